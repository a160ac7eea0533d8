"""
Per-connection session module.

A Session owns one client connection from accept to close: the login /
register exchange, the read loop of an active user, and the cleanup that
removes the user from the online list and from the current room.

Outbound lines never go straight to the socket. They are put on a bounded
queue and written by a writer task owned by the session, so a stalled client
only ever blocks itself.
"""

import asyncio
from enum import Enum
from typing import List, Optional

from common.constants import AuthChoices, ENCODING
from common.protocol_definitions import (
    WELCOME_LINES, INVALID_CHOICE, LOGIN_USERNAME_PROMPT, LOGIN_PASSWORD_PROMPT, LOGIN_FAILED,
    REGISTER_USERNAME_PROMPT, REGISTER_PASSWORD_PROMPT, REGISTER_SUCCESS, REGISTER_TAKEN,
    REGISTER_BAD_USERNAME, REGISTER_BAD_PASSWORD, ALREADY_LOGGED_IN, LINE_TOO_LONG,
    is_command, is_valid_name, create_chat_line, create_joined_line, create_disconnected_line,
    create_logged_in_lines, create_history_lines
)
from server.utils.logger import logger


class SessionState(Enum):
    CONNECTING = 'connecting'
    AUTHENTICATING = 'authenticating'
    ACTIVE = 'active'
    CLOSED = 'closed'


# Queued after the last line to make the writer task flush and stop.
_CLOSE = object()


class Session:
    """Server-side state of one connected client."""

    def __init__(self, server, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        self.server = server
        self.config = server.config
        self.reader = reader
        self.writer = writer
        self.addr = writer.get_extra_info('peername')

        self.state = SessionState.CONNECTING
        self.username: Optional[str] = None  # set once the online slot is claimed
        self.room: Optional[str] = None

        self.outbound: asyncio.Queue = asyncio.Queue(maxsize=self.config.outbound_queue_size)
        self.dropped = 0
        self.writer_task: Optional[asyncio.Task] = None
        self._cleaned_up = False

    def __repr__(self):
        return f"<Session {self.username or '-'} {self.addr} {self.state.value}>"

    @property
    def is_closed(self) -> bool:
        return self.state is SessionState.CLOSED

    # ===== Outbound =====

    def deliver(self, line: str) -> bool:
        """
        Queue a line without waiting; used for room fan-out and PMs.

        When the queue is full the oldest pending line is dropped to make
        room, so a client that stopped reading loses backlog instead of
        delaying everybody else.
        """
        if self.is_closed:
            return False
        try:
            self.outbound.put_nowait(line)
        except asyncio.QueueFull:
            self._drop_oldest()
            self.outbound.put_nowait(line)
        return True

    def _drop_oldest(self):
        try:
            self.outbound.get_nowait()
        except asyncio.QueueEmpty:
            return
        self.dropped += 1
        if self.dropped == 1 or self.dropped % 100 == 0:
            logger.log_dropped(self.username, self.dropped)

    async def send(self, line: str) -> bool:
        """
        Queue a reply for this session only.

        Waits up to send_timeout for queue space; a client that cannot absorb
        its own replies in that time is treated as stalled and aborted.
        """
        if self.is_closed:
            return False
        try:
            await asyncio.wait_for(self.outbound.put(line), self.config.send_timeout)
            return True
        except asyncio.TimeoutError:
            logger.warning(f"Send timeout for {self!r}, closing")
            self.abort()
            return False

    async def send_lines(self, lines: List[str]) -> bool:
        for line in lines:
            if not await self.send(line):
                return False
        return True

    async def _write_loop(self):
        """Drain the outbound queue onto the socket."""
        try:
            while True:
                line = await self.outbound.get()
                if line is _CLOSE:
                    break
                self.writer.write((line + '\n').encode(ENCODING))
                await asyncio.wait_for(self.writer.drain(), self.config.send_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Write timeout for {self!r}, aborting connection")
            self.abort()
        except (ConnectionError, OSError) as e:
            logger.debug(f"Write failed for {self!r}: {e}")
            self.abort()
        except Exception as e:
            logger.log_error(f"writer for {self!r}", e)
            self.abort()

    # ===== Inbound =====

    async def read_line(self) -> Optional[str]:
        """Read one line; None once the peer is gone."""
        try:
            data = await self.reader.readuntil(b'\n')
        except asyncio.IncompleteReadError as e:
            # EOF; an unterminated last line still counts
            data = e.partial
        except asyncio.LimitOverrunError as e:
            if not await self._discard_long_line(e.consumed):
                return None
            await self.send(LINE_TOO_LONG)
            return ''
        except (ConnectionError, OSError) as e:
            logger.debug(f"Read failed for {self!r}: {e}")
            return None
        if not data:
            return None
        return data.decode(ENCODING, errors='replace').rstrip('\r\n')

    async def _discard_long_line(self, consumed: int) -> bool:
        """Skip the rest of an over-long line. False if the peer went away."""
        try:
            while True:
                await self.reader.readexactly(consumed)
                try:
                    await self.reader.readuntil(b'\n')
                    return True
                except asyncio.LimitOverrunError as e:
                    consumed = e.consumed
        except asyncio.IncompleteReadError:
            return False
        except (ConnectionError, OSError):
            return False

    async def prompt(self, text: str) -> Optional[str]:
        if not await self.send(text):
            return None
        return await self.read_line()

    # ===== Lifecycle =====

    def close(self):
        """
        Stop accepting operations and let the writer flush what is queued.

        Safe to call more than once.
        """
        if self.is_closed:
            return
        self.state = SessionState.CLOSED
        try:
            self.outbound.put_nowait(_CLOSE)
        except asyncio.QueueFull:
            self.outbound.get_nowait()
            self.outbound.put_nowait(_CLOSE)

    def abort(self):
        """Close immediately, dropping queued output. Unblocks a pending read."""
        self.state = SessionState.CLOSED
        transport = self.writer.transport
        if transport is not None and not transport.is_closing():
            transport.abort()
        if self.writer_task is not None and self.writer_task is not asyncio.current_task():
            self.writer_task.cancel()

    async def run(self):
        """Drive the session from accept to close."""
        self.writer_task = asyncio.create_task(self._write_loop())
        try:
            username = await self.authenticate()
            if username is None or self.is_closed:
                return

            if not await self.activate(username):
                if self.is_closed:
                    return
                logger.log_duplicate_login(username, self.addr)
                await self.send(ALREADY_LOGGED_IN)
                self.close()
                return

            await self.read_loop()
        except asyncio.CancelledError:
            logger.info(f"Connection cancelled for {self!r}")
            raise
        finally:
            await self.cleanup()

    async def authenticate(self) -> Optional[str]:
        """Run the login / register menu. Returns the username or None."""
        self.state = SessionState.AUTHENTICATING
        if not await self.send_lines(WELCOME_LINES):
            return None

        choice = await self.read_line()
        if choice is None:
            return None
        choice = choice.strip().lower()
        if choice in (AuthChoices.LOGIN, 'login'):
            return await self.login_flow()
        if choice in (AuthChoices.REGISTER, 'register'):
            return await self.register_flow()

        await self.send(INVALID_CHOICE)
        self.close()
        return None

    async def login_flow(self) -> Optional[str]:
        credentials = self.server.credentials
        while True:
            username = await self.prompt(LOGIN_USERNAME_PROMPT)
            if username is None:
                return None
            password = await self.prompt(LOGIN_PASSWORD_PROMPT)
            if password is None:
                return None

            username = username.strip()
            if await credentials.verify(username, password):
                return username
            logger.log_auth_failure(username, self.addr)
            await self.send(LOGIN_FAILED)

    async def register_flow(self) -> Optional[str]:
        credentials = self.server.credentials
        while True:
            username = await self.prompt(REGISTER_USERNAME_PROMPT)
            if username is None:
                return None
            password = await self.prompt(REGISTER_PASSWORD_PROMPT)
            if password is None:
                return None

            username = username.strip()
            if not is_valid_name(username):
                await self.send(REGISTER_BAD_USERNAME)
                continue
            if not password:
                await self.send(REGISTER_BAD_PASSWORD)
                continue

            if await credentials.register(username, password):
                logger.log_register(username, self.addr)
                await self.send(REGISTER_SUCCESS)
                return username
            await self.send(REGISTER_TAKEN)

    async def activate(self, username: str) -> bool:
        """
        Claim the online slot and enter the default room.

        The claim and the room join happen under the room's history lock,
        right after the recent lines are read: a message persisted before
        that point is in the replayed history, one persisted after it is
        delivered live, and none is both. False if the name is taken.
        """
        server = self.server
        lobby = server.rooms.default_room

        def claim():
            if self.is_closed or not server.sessions.try_register(username, self):
                return
            self.username = username
            self.room = lobby
            self.state = SessionState.ACTIVE
            server.rooms.join(lobby, self)

        recent = await server.history.tail(lobby, self.config.history_lines_on_join, on_locked=claim)
        if self.username is None:
            return False
        logger.log_login(self.username, self.addr)

        await self.send_lines(create_logged_in_lines(self.username, self.room))
        await self.send_lines(create_history_lines(self.room, recent))
        await server.broadcaster.broadcast(self.room, create_joined_line(self.username, self.room), persist=True)
        return True

    async def read_loop(self):
        while not self.is_closed:
            line = await self.read_line()
            if line is None:
                break
            if not line.strip():
                continue

            if is_command(line):
                await self.server.dispatcher.dispatch(self, line)
            else:
                logger.log_chat(self.username, self.room, line)
                await self.server.broadcaster.broadcast(self.room, create_chat_line(self.username, line), persist=True)

    async def cleanup(self):
        """
        Release everything the session holds. Runs exactly once.

        Online slot and room membership are dropped back to back without an
        await, so no broadcast can target a half-removed session.
        """
        if self._cleaned_up:
            return
        self._cleaned_up = True

        server = self.server
        username = self.username
        room = self.room
        if username is not None:
            server.sessions.remove(username, self)
        if room is not None:
            server.rooms.leave(room, self)
        self.close()

        if username is not None and room is not None:
            try:
                await server.broadcaster.broadcast(room, create_disconnected_line(username), persist=True)
            except Exception as e:
                logger.log_error(f"departure notice for {username}", e)

        await self._shutdown_writer()
        logger.log_disconnect(username, self.addr)

    async def _shutdown_writer(self):
        if self.writer_task is not None:
            done, _ = await asyncio.wait({self.writer_task}, timeout=self.config.send_timeout)
            if not done:
                self.abort()
        try:
            self.writer.close()
            await self.writer.wait_closed()
        except (ConnectionError, OSError):
            pass
