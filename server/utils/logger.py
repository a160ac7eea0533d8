"""
Server logging module.

This module handles server-side logging functionality.
"""

import logging
from pathlib import Path
from typing import Optional

from common.constants import SERVER_LOG_FILE


class ServerLogger:
    """Server logging class."""

    def __init__(self, logs_dir: Optional[str] = None, log_level: int = logging.INFO):
        self.logger = logging.getLogger('roomchat_server')
        self.logger.setLevel(log_level)

        # Remove existing handlers
        for handler in self.logger.handlers[:]:
            self.logger.removeHandler(handler)

        # Create formatter
        self.formatter = logging.Formatter(
            '%(asctime)s [%(levelname)s] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        # Create console handler
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        console_handler.setFormatter(self.formatter)
        self.logger.addHandler(console_handler)

        self.log_path = None
        if logs_dir:
            self.add_file_handler(logs_dir)

    def configure(self, logs_dir: Optional[str] = None, log_level: int = logging.INFO):
        """Apply command line settings to the shared logger."""
        self.logger.setLevel(log_level)
        for handler in self.logger.handlers:
            handler.setLevel(log_level)
        if logs_dir and self.log_path is None:
            self.add_file_handler(logs_dir)

    def add_file_handler(self, logs_dir: str):
        """Also write log records to <logs_dir>/server.log."""
        path = Path(logs_dir)
        path.mkdir(parents=True, exist_ok=True)
        self.log_path = path / SERVER_LOG_FILE

        file_handler = logging.FileHandler(self.log_path, encoding='utf-8')
        file_handler.setLevel(self.logger.level)
        file_handler.setFormatter(self.formatter)
        self.logger.addHandler(file_handler)

    def info(self, message: str):
        """Log info message."""
        self.logger.info(message)

    def error(self, message: str):
        """Log error message."""
        self.logger.error(message)

    def warning(self, message: str):
        """Log warning message."""
        self.logger.warning(message)

    def debug(self, message: str):
        """Log debug message."""
        self.logger.debug(message)

    def log_connection(self, addr: tuple):
        """Log client connection."""
        self.info(f"New connection from {addr}")

    def log_register(self, username: str, addr: tuple):
        """Log account registration."""
        self.info(f"📝 Registered new user '{username}' from {addr}")

    def log_auth_failure(self, username: str, addr: tuple):
        """Log failed login."""
        self.warning(f"Failed login for '{username}' from {addr}")

    def log_duplicate_login(self, username: str, addr: tuple):
        """Log rejected second login."""
        self.warning(f"Rejected duplicate login for '{username}' from {addr}")

    def log_login(self, username: str, addr: tuple):
        """Log user login."""
        self.info(f"User '{username}' logged in from {addr}")

    def log_disconnect(self, username: Optional[str], addr: tuple):
        """Log user disconnect."""
        if username:
            self.info(f"User {username} ({addr}) disconnected")
        else:
            self.info(f"Connection {addr} closed before login")

    def log_chat(self, username: str, room: str, message: str):
        """Log chat message."""
        self.debug(f"Chat #{room} from {username}: {message}")

    def log_pm(self, from_username: str, to_username: str):
        """Log private message. The text itself is not logged."""
        self.debug(f"📨 PM from {from_username} to {to_username}")

    def log_room_change(self, username: str, old_room: str, new_room: str):
        """Log room switch."""
        self.info(f"User {username} moved #{old_room} → #{new_room}")

    def log_dropped(self, username: Optional[str], dropped: int):
        """Log outbound lines dropped for a slow client."""
        self.warning(f"Outbound queue full for {username or 'unauthenticated client'}, dropped {dropped} line(s)")

    def log_error(self, operation: str, error: Exception):
        """Log error with operation context."""
        self.error(f"Error in {operation}: {error}")


# Global logger instance
logger = ServerLogger()
