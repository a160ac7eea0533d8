"""
Server configuration module.

This module handles server-side configuration settings.
"""

import os

from common.constants import (
    DEFAULT_SERVER_HOST, DEFAULT_PORT, DATA_DIR, HISTORY_DIR, USERS_FILE, LOG_DIR,
    OUTBOUND_QUEUE_SIZE, SEND_TIMEOUT, HISTORY_LINES_ON_JOIN, MAX_LINE_LENGTH
)


class ServerConfig:
    """Server configuration class."""

    def __init__(self, host: str = DEFAULT_SERVER_HOST, port: int = DEFAULT_PORT, data_dir: str = DATA_DIR,
                 logs_dir: str = None):
        self.host = host
        self.port = port
        self.data_dir = data_dir

        # Storage locations
        self.history_dir = os.path.join(data_dir, HISTORY_DIR)
        self.users_file = os.path.join(data_dir, USERS_FILE)

        # Logging configuration
        self.logs_dir = logs_dir if logs_dir is not None else LOG_DIR

        # Delivery settings
        self.outbound_queue_size = OUTBOUND_QUEUE_SIZE
        self.send_timeout = SEND_TIMEOUT  # seconds

        # Chat settings
        self.history_lines_on_join = HISTORY_LINES_ON_JOIN
        self.max_line_length = MAX_LINE_LENGTH

    def get_connection_info(self):
        """Get connection information."""
        return {
            'host': self.host,
            'port': self.port
        }

    def get_storage_settings(self):
        """Get storage settings."""
        return {
            'data_dir': self.data_dir,
            'history_dir': self.history_dir,
            'users_file': self.users_file
        }

    def get_log_settings(self):
        """Get logging settings."""
        return {
            'logs_dir': self.logs_dir
        }
