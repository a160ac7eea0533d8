#!/usr/bin/env python3
"""
Multi-room Chat Server - Server Context and Listener

This module builds the single server context that owns every registry and
store, and accepts connections, running one Session task per client.
"""

import asyncio
import argparse
import logging

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from server.auth.credential_store import CredentialStore
from server.chat.broadcaster import Broadcaster
from server.chat.command_dispatcher import CommandDispatcher
from server.chat.history_store import HistoryStore
from server.chat.room_registry import RoomRegistry
from server.chat.session import Session
from server.chat.session_registry import SessionRegistry
from server.utils.config import ServerConfig
from server.utils.logger import logger
from common.constants import DEFAULT_SERVER_HOST, DEFAULT_PORT, DATA_DIR


class ChatServer:
    """
    Server context: configuration, credential store, history, online and
    room registries, broadcaster and dispatcher. Created once and handed to
    every Session; nothing here is module-level state.
    """

    def __init__(self, config: ServerConfig = None, credentials: CredentialStore = None):
        self.config = config or ServerConfig()

        # Initialize modules
        self.credentials = credentials or CredentialStore(self.config.users_file)
        self.history = HistoryStore(self.config.history_dir)
        self.sessions = SessionRegistry()
        self.rooms = RoomRegistry()
        self.broadcaster = Broadcaster(self.rooms, self.history)
        self.dispatcher = CommandDispatcher(self)

        self.server = None

    async def handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        """Handle individual client connection."""
        session = Session(self, reader, writer)
        logger.log_connection(session.addr)

        try:
            await session.run()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # One broken session must never take the listener down
            logger.log_error(f"session {session.addr}", e)
            session.abort()
            await session.cleanup()

    async def listen(self) -> asyncio.AbstractServer:
        """Bind the listening socket."""
        self.server = await asyncio.start_server(
            self.handle_client,
            self.config.host,
            self.config.port,
            limit=self.config.max_line_length
        )

        addr = ', '.join(str(sock.getsockname()) for sock in self.server.sockets)
        logger.info(f"Server listening on {addr}")
        return self.server

    @property
    def port(self) -> int:
        """Port actually bound (useful when configured with port 0)."""
        return self.server.sockets[0].getsockname()[1]

    async def start(self):
        """Start the server and accept connections until cancelled."""
        server = await self.listen()
        async with server:
            await server.serve_forever()


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Multi-room Chat Server')
    parser.add_argument('--host', type=str, default=DEFAULT_SERVER_HOST,
                        help=f'Host to bind to (default: {DEFAULT_SERVER_HOST})')
    parser.add_argument('--port', type=int, default=DEFAULT_PORT,
                        help=f'TCP port (default: {DEFAULT_PORT})')
    parser.add_argument('--data-dir', type=str, default=DATA_DIR,
                        help=f'Directory for accounts and room history (default: {DATA_DIR})')
    parser.add_argument('--log-dir', type=str, default=None,
                        help='Also write server.log into this directory')
    parser.add_argument('--debug', action='store_true',
                        help='Enable debug logging')
    return parser


def main(argv=None):
    args = build_arg_parser().parse_args(argv)
    logger.configure(args.log_dir, logging.DEBUG if args.debug else logging.INFO)

    config = ServerConfig(host=args.host, port=args.port, data_dir=args.data_dir, logs_dir=args.log_dir)
    try:
        server = ChatServer(config)
        asyncio.run(server.start())
    except KeyboardInterrupt:
        logger.info("Server shutting down...")
    except Exception as e:
        logger.log_error("server", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
