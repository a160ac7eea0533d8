#!/usr/bin/env python3
"""
Multi-room Chat Server - Main Entry Point

Usage:
    python main_server.py

Optional arguments:
    --host HOST           Bind address (default: 0.0.0.0)
    --port PORT           TCP port (default: 5000)
    --data-dir DIR        Accounts and room history (default: data)
    --log-dir DIR         Also write server.log into DIR
    --debug               Enable debug logging
"""

import sys

from server.main_server import main


if __name__ == "__main__":
    sys.exit(main())
