"""
Command dispatcher module.

Interprets ``/``-prefixed lines from an active session. Replies go to the
invoking session only; /join and /leave also notify the rooms involved.
"""

from common.constants import Commands
from common.protocol_definitions import (
    HELP_LINES, JOIN_USAGE, PM_USAGE, BAD_ROOM_NAME, LOGOUT_REPLY, UNKNOWN_COMMAND,
    parse_command, is_valid_name, normalize_room, create_users_line, create_rooms_line,
    create_already_in_room_line, create_joined_room_line, create_returned_line,
    create_left_line, create_joined_line, create_history_lines, create_no_history_line,
    create_pm_line, create_not_online_line
)
from server.utils.logger import logger


class CommandDispatcher:
    """Route a command line to its handler."""

    def __init__(self, server):
        self.server = server
        self.handlers = {
            Commands.HELP: self.handle_help,
            Commands.USERS: self.handle_users,
            Commands.ROOMS: self.handle_rooms,
            Commands.JOIN: self.handle_join,
            Commands.LEAVE: self.handle_leave,
            Commands.PM: self.handle_pm,
            Commands.HISTORY: self.handle_history,
            Commands.LOGOUT: self.handle_logout,
        }

    async def dispatch(self, session, line: str):
        command = parse_command(line)
        handler = self.handlers.get(command.name)
        if handler is None:
            await session.send(UNKNOWN_COMMAND)
            return
        await handler(session, command)

    async def handle_help(self, session, command):
        await session.send_lines(HELP_LINES)

    async def handle_users(self, session, command):
        await session.send(create_users_line(self.server.sessions.list_usernames()))

    async def handle_rooms(self, session, command):
        await session.send(create_rooms_line(self.server.rooms.list_rooms()))

    async def handle_join(self, session, command):
        target = command.arg(0)
        if target is None:
            await session.send(JOIN_USAGE)
            return

        target = normalize_room(target)
        if not is_valid_name(target):
            await session.send(BAD_ROOM_NAME)
            return
        if target == session.room:
            await session.send(create_already_in_room_line(session.room))
            return

        await self.switch_room(session, target, create_joined_room_line(target))

    async def handle_leave(self, session, command):
        lobby = self.server.rooms.default_room
        if session.room == lobby:
            await session.send(create_already_in_room_line(lobby))
            return

        await self.switch_room(session, lobby, create_returned_line(lobby))

    async def switch_room(self, session, target: str, confirmation: str):
        """
        Leave the current room for `target`, announcing both moves.

        The move happens under the target's history lock, right after the
        recent lines are read, so a concurrent message shows up either in the
        replayed history or live, never in both.
        """
        server = self.server
        previous = session.room
        recent = await server.history.tail(
            target, server.config.history_lines_on_join,
            on_locked=lambda: server.rooms.move(session, target)
        )
        logger.log_room_change(session.username, previous, target)

        await server.broadcaster.broadcast(previous, create_left_line(session.username, previous), persist=True)
        await session.send(confirmation)
        await session.send_lines(create_history_lines(target, recent))
        await server.broadcaster.broadcast(target, create_joined_line(session.username, target), persist=True)

    async def handle_pm(self, session, command):
        target_name = command.arg(0)
        text = command.arg(1)
        if target_name is None or text is None:
            await session.send(PM_USAGE)
            return

        target = self.server.sessions.get(target_name)
        if target is None:
            await session.send(create_not_online_line(target_name))
            return

        line = create_pm_line(session.username, target_name, text)
        logger.log_pm(session.username, target_name)
        if target is not session:
            target.deliver(line)
        await session.send(line)

    async def handle_history(self, session, command):
        default = self.server.config.history_lines_on_join
        n = default
        if command.arg(0) is not None:
            try:
                n = int(command.arg(0))
            except ValueError:
                n = default

        lines = await self.server.history.tail(session.room, n)
        if not lines:
            await session.send(create_no_history_line(session.room))
        else:
            await session.send_lines(create_history_lines(session.room, lines))

    async def handle_logout(self, session, command):
        await session.send(LOGOUT_REPLY)
        session.close()
