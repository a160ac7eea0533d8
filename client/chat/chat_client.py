"""
Chat client module.

A plain relay between the terminal and the server: every server line is
printed, every stdin line is sent as typed.
"""

import asyncio
import sys
import threading
from typing import Optional, TextIO

from common.constants import ENCODING


class ChatClient:
    """Client-side chat relay."""

    def __init__(self, host: str, port: int, output: TextIO = None):
        self.host = host
        self.port = port
        self.output = output or sys.stdout
        self.reader: Optional[asyncio.StreamReader] = None
        self.writer: Optional[asyncio.StreamWriter] = None

    async def connect(self) -> bool:
        """Open the connection to the server."""
        try:
            self.reader, self.writer = await asyncio.open_connection(self.host, self.port)
            return True
        except OSError as e:
            print(f"[ERROR] Could not connect to {self.host}:{self.port}: {e}", file=sys.stderr)
            return False

    async def send_line(self, line: str) -> bool:
        """Send one line to the server."""
        if not self.writer:
            print("[ERROR] Not connected to server", file=sys.stderr)
            return False

        try:
            self.writer.write((line.rstrip('\r\n') + '\n').encode(ENCODING))
            await self.writer.drain()
            return True
        except (ConnectionError, OSError) as e:
            print(f"[ERROR] Failed to send message: {e}", file=sys.stderr)
            return False

    async def receive_loop(self):
        """Print server lines until the server closes the connection."""
        while True:
            try:
                data = await self.reader.readline()
            except (ConnectionError, OSError):
                break
            if not data:
                break
            print(data.decode(ENCODING, errors='replace').rstrip('\r\n'), file=self.output, flush=True)

    async def input_loop(self, stdin: TextIO = None):
        """Forward stdin lines until EOF."""
        stdin = stdin or sys.stdin
        loop = asyncio.get_running_loop()
        lines: asyncio.Queue = asyncio.Queue()

        # Daemon thread so a pending readline never blocks interpreter exit
        def read_stdin():
            while True:
                line = stdin.readline()
                try:
                    loop.call_soon_threadsafe(lines.put_nowait, line)
                except RuntimeError:
                    break  # loop already closed
                if not line:
                    break

        threading.Thread(target=read_stdin, name='stdin-reader', daemon=True).start()

        while True:
            line = await lines.get()
            if not line:
                break
            if not await self.send_line(line):
                break

    async def run(self) -> int:
        if not await self.connect():
            return 1

        receiver = asyncio.create_task(self.receive_loop())
        sender = asyncio.create_task(self.input_loop())
        try:
            await asyncio.wait({receiver, sender}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            sender.cancel()
            receiver.cancel()
            await self.close()
        print("[INFO] Disconnected from server", file=sys.stderr)
        return 0

    async def close(self):
        if self.writer is None:
            return
        try:
            self.writer.close()
            await self.writer.wait_closed()
        except (ConnectionError, OSError):
            pass
        self.writer = None
