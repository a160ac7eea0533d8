"""
Protocol definitions for the multi-room chat service.

This module defines the text lines exchanged between client and server and
the format of persisted history records. Every server-to-client message is a
single UTF-8 line; multi-line replies are sent as several lines.
"""

import re
from typing import List, Optional
from dataclasses import dataclass
from datetime import datetime

from common.constants import (
    TIMESTAMP_FORMAT, COMMAND_PREFIX, MAX_NAME_LENGTH
)


NAME_PATTERN = re.compile(r'^[A-Za-z0-9_-]{1,%d}$' % MAX_NAME_LENGTH)

HISTORY_FOOTER = '-' * 45

HELP_LINES = [
    "Commands:",
    "/help                     - Show this help",
    "/users                    - Show online users",
    "/rooms                    - List rooms",
    "/join <room>              - Join/create room",
    "/leave                    - Leave current room (go to #lobby)",
    "/pm <user> <message>      - Private message",
    "/history [n]              - Show last n lines of this room (default 20)",
    "/logout                   - Logout",
]

# Authentication prompts
WELCOME_LINES = [
    "Welcome to the Chat Server!",
    "1. Login",
    "2. Register",
    "Enter choice:",
]
INVALID_CHOICE = "Invalid choice. Bye!"
LOGIN_USERNAME_PROMPT = "Enter username:"
LOGIN_PASSWORD_PROMPT = "Enter password:"
LOGIN_FAILED = "❌ Wrong username or password. Try again."
REGISTER_USERNAME_PROMPT = "Choose username:"
REGISTER_PASSWORD_PROMPT = "Choose password:"
REGISTER_SUCCESS = "✅ Registered successfully!"
REGISTER_TAKEN = "❌ Username already exists. Try again."
REGISTER_BAD_USERNAME = "❌ Usernames may only contain letters, digits, '_' or '-' (max %d). Try again." % MAX_NAME_LENGTH
REGISTER_BAD_PASSWORD = "❌ Password must not be empty. Try again."
ALREADY_LOGGED_IN = "This user is already logged in elsewhere. Disconnecting."

# Command replies
JOIN_USAGE = "Usage: /join <room>"
PM_USAGE = "Usage: /pm <username> <message>"
BAD_ROOM_NAME = "❌ Room names may only contain letters, digits, '_' or '-' (max %d)." % MAX_NAME_LENGTH
LOGOUT_REPLY = "Logging out… Bye!"
UNKNOWN_COMMAND = "Unknown command. Type /help"
LINE_TOO_LONG = "❌ Line too long."


@dataclass
class ParsedCommand:
    """A command line split into its name and at most two arguments."""
    name: str
    args: List[str]

    def arg(self, index: int) -> Optional[str]:
        """Return argument `index` or None when it was not supplied."""
        if index < len(self.args):
            return self.args[index]
        return None


def timestamp(now: Optional[datetime] = None) -> str:
    """Format a timestamp the way chat lines and history records use it."""
    return (now or datetime.now()).strftime(TIMESTAMP_FORMAT)


def is_command(line: str) -> bool:
    """Check whether an input line should be routed to the dispatcher."""
    return line.startswith(COMMAND_PREFIX)


def parse_command(line: str) -> ParsedCommand:
    """
    Split a command line on whitespace.

    The first token is lower-cased; the rest of the line is split into at
    most two further parts so that the last one keeps its inner spaces
    (``/pm bob see you later`` -> ``['bob', 'see you later']``).
    """
    parts = line.strip().split(maxsplit=2)
    if not parts:
        return ParsedCommand(name='', args=[])
    return ParsedCommand(name=parts[0].lower(), args=parts[1:])


def is_valid_name(name: str) -> bool:
    """Validate a username or room name."""
    return bool(name) and NAME_PATTERN.match(name) is not None


def normalize_room(room: str) -> str:
    """Rooms are case-insensitive; store them lower-cased."""
    return room.strip().lower()


def create_chat_line(username: str, text: str) -> str:
    """Create an organic chat line as broadcast and persisted."""
    return f"[{timestamp()}] {username}: {text}"


def create_joined_line(username: str, room: str) -> str:
    """Create a join notice."""
    return f"📢 [{timestamp()}] {username} joined #{room}"


def create_left_line(username: str, room: str) -> str:
    """Create a leave notice."""
    return f"📢 [{timestamp()}] {username} left #{room}"


def create_disconnected_line(username: str) -> str:
    """Create a departure notice sent to the room on cleanup."""
    return f"📢 [{timestamp()}] {username} disconnected"


def create_pm_line(from_username: str, to_username: str, text: str) -> str:
    """Create a private message line."""
    return f"💬 [{timestamp()}] (PM) {from_username} → {to_username}: {text}"


def create_logged_in_lines(username: str, room: str) -> List[str]:
    """Create the welcome banner sent after authentication."""
    return [
        f"✅ [{timestamp()}] Logged in as {username}",
        f"Type /help for commands. You are in room: #{room}",
    ]


def create_history_lines(room: str, lines: List[str]) -> List[str]:
    """Frame history lines with a header and footer."""
    if not lines:
        return []
    return [f"---- Last {len(lines)} messages (#{room}) ----", *lines, HISTORY_FOOTER]


def create_no_history_line(room: str) -> str:
    return f"No history for #{room}"


def create_users_line(usernames: List[str]) -> str:
    return f"Online users ({len(usernames)}): {', '.join(usernames)}"


def create_rooms_line(rooms: List[str]) -> str:
    return f"Rooms: {', '.join(rooms)}"


def create_already_in_room_line(room: str) -> str:
    return f"You are already in #{room}"


def create_joined_room_line(room: str) -> str:
    return f"✅ Joined room #{room}"


def create_returned_line(room: str) -> str:
    return f"✅ Returned to #{room}"


def create_not_online_line(username: str) -> str:
    return f"User '{username}' is not online."
