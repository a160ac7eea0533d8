"""
Room history module.

Each room has its own append-only text file, one record per line.
"""

import asyncio
import sys
from collections import deque
from pathlib import Path
from typing import Callable, Dict, List, Optional

from common.constants import HISTORY_FILE_PREFIX, HISTORY_FILE_SUFFIX
from server.utils.logger import logger


class HistoryStore:
    """
    Durable per-room message log with tail retrieval.

    Reads and writes of one room go through that room's lock. Both append
    and tail accept an ``on_locked`` callback that runs while the lock is
    held, which lets callers tie a membership change or a delivery to a
    precise point in the room's log.
    """

    def __init__(self, history_dir: str):
        self.history_dir = Path(history_dir)
        self.history_dir.mkdir(parents=True, exist_ok=True)
        self.locks: Dict[str, asyncio.Lock] = {}  # room -> lock

    def path_for(self, room: str) -> Path:
        return self.history_dir / f"{HISTORY_FILE_PREFIX}{room}{HISTORY_FILE_SUFFIX}"

    def lock_for(self, room: str) -> asyncio.Lock:
        lock = self.locks.get(room)
        if lock is None:
            lock = self.locks[room] = asyncio.Lock()
        return lock

    def _write(self, room: str, line: str):
        with open(self.path_for(room), 'a', encoding='utf-8') as f:
            f.write(line + '\n')

    def _read_tail(self, room: str, n: int) -> List[str]:
        path = self.path_for(room)
        if not path.exists():
            return []
        with open(path, 'r', encoding='utf-8', errors='replace') as f:
            return [line.rstrip('\r\n') for line in deque(f, maxlen=n)]

    async def append(self, room: str, line: str, on_locked: Optional[Callable[[], None]] = None) -> bool:
        """
        Append one record to the room's log.

        Writes for the same room are serialized by a per-room lock; rooms do
        not wait on each other. `on_locked` runs before the write. A failed
        write is logged and reported as False, it is never raised to the
        caller.
        """
        async with self.lock_for(room):
            if on_locked is not None:
                on_locked()
            try:
                await asyncio.to_thread(self._write, room, line)
                return True
            except OSError as e:
                logger.log_error(f"history append for #{room}", e)
                return False

    async def tail(self, room: str, n: int, on_locked: Optional[Callable[[], None]] = None) -> List[str]:
        """
        Return the last min(n, total) records of a room, oldest first.

        `n` is clamped to [1, sys.maxsize]. `on_locked` runs right after the
        read, before any later append of this room can start.
        """
        n = min(max(1, n), sys.maxsize)
        async with self.lock_for(room):
            try:
                lines = await asyncio.to_thread(self._read_tail, room, n)
            except OSError as e:
                logger.log_error(f"history read for #{room}", e)
                lines = []
            if on_locked is not None:
                on_locked()
        return lines
