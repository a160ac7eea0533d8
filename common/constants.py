"""
Shared constants for the multi-room chat service.

This module contains all constants used across client and server components.
"""

# Network Configuration
DEFAULT_HOST = 'localhost'
DEFAULT_SERVER_HOST = '0.0.0.0'
DEFAULT_PORT = 5000

# Line handling
ENCODING = 'utf-8'
MAX_LINE_LENGTH = 4096  # bytes per inbound line

# Outbound delivery
OUTBOUND_QUEUE_SIZE = 256  # lines buffered per session
SEND_TIMEOUT = 10  # seconds

# Rooms
DEFAULT_ROOM = 'lobby'
HISTORY_LINES_ON_JOIN = 20
MAX_NAME_LENGTH = 32

# Storage
DATA_DIR = 'data'
HISTORY_DIR = 'history'
USERS_FILE = 'users.txt'
HISTORY_FILE_PREFIX = 'history_'
HISTORY_FILE_SUFFIX = '.txt'

# Logging
LOG_DIR = 'logs'
SERVER_LOG_FILE = 'server.log'

# Timestamps in chat lines and history records
TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S'

# Command prefix and names
COMMAND_PREFIX = '/'


class Commands:
    HELP = '/help'
    USERS = '/users'
    ROOMS = '/rooms'
    JOIN = '/join'
    LEAVE = '/leave'
    PM = '/pm'
    HISTORY = '/history'
    LOGOUT = '/logout'


# Authentication menu choices
class AuthChoices:
    LOGIN = '1'
    REGISTER = '2'
