#!/usr/bin/env python3
"""
Multi-room Chat Client - Main Entry Point

Line-oriented terminal client: prints what the server sends and forwards
what you type.

Usage:
    python main_client.py [--server-ip HOST] [--port PORT]
"""

import sys
import os
import asyncio
import argparse

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from client.chat.chat_client import ChatClient
from client.utils.config import ClientConfig
from common.constants import DEFAULT_HOST, DEFAULT_PORT


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(description='Multi-room Chat Client')
    parser.add_argument('--server-ip', type=str, default=DEFAULT_HOST,
                        help=f'Server IP address (default: {DEFAULT_HOST})')
    parser.add_argument('--port', type=int, default=DEFAULT_PORT,
                        help=f'Server port (default: {DEFAULT_PORT})')
    args = parser.parse_args(argv)

    config = ClientConfig(args.server_ip, args.port)
    client = ChatClient(config.host, config.port)
    try:
        return asyncio.run(client.run())
    except KeyboardInterrupt:
        print("\n[INFO] Interrupted by user")
        return 0


if __name__ == "__main__":
    sys.exit(main())
