#!/usr/bin/env python3
"""
Unit tests for server/chat/broadcaster.py and the outbound queue of
server/chat/session.py

A member whose queue is full (a client that stopped reading) must not delay
delivery to the rest of the room.
"""

import asyncio
import tempfile
import unittest
from types import SimpleNamespace
from unittest.mock import Mock

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from server.chat.broadcaster import Broadcaster
from server.chat.history_store import HistoryStore
from server.chat.room_registry import RoomRegistry
from server.chat.session import Session, SessionState
from server.utils.config import ServerConfig


def make_session(config, username, port=40000):
    writer = Mock()
    writer.get_extra_info.return_value = ('127.0.0.1', port)
    writer.transport.is_closing.return_value = False
    session = Session(SimpleNamespace(config=config), Mock(), writer)
    session.username = username
    session.state = SessionState.ACTIVE
    return session


def drain(session):
    lines = []
    while not session.outbound.empty():
        lines.append(session.outbound.get_nowait())
    return lines


class TestSessionOutbound(unittest.IsolatedAsyncioTestCase):
    """Test cases for the bounded per-session queue."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.config = ServerConfig(data_dir=self.tmp.name)
        self.config.outbound_queue_size = 3
        self.config.send_timeout = 0.05

    def tearDown(self):
        self.tmp.cleanup()

    async def test_deliver_drops_oldest_when_full(self):
        session = make_session(self.config, "alice")
        for i in range(5):
            self.assertTrue(session.deliver(f"line {i}"))
        self.assertEqual(drain(session), ["line 2", "line 3", "line 4"])
        self.assertEqual(session.dropped, 2)

    async def test_deliver_after_close_is_refused(self):
        session = make_session(self.config, "alice")
        session.close()
        self.assertFalse(session.deliver("late"))
        self.assertFalse(await session.send("late"))

    async def test_send_times_out_and_aborts_stalled_client(self):
        session = make_session(self.config, "alice")
        for i in range(3):
            session.deliver(f"backlog {i}")

        self.assertFalse(await session.send("reply"))

        self.assertTrue(session.is_closed)
        session.writer.transport.abort.assert_called_once()

    async def test_unexpected_write_error_closes_session(self):
        session = make_session(self.config, "alice")
        session.writer.write.side_effect = RuntimeError("encoder exploded")
        session.writer_task = asyncio.create_task(session._write_loop())

        session.deliver("boom")
        await asyncio.wait_for(asyncio.wait({session.writer_task}), 1)

        self.assertIsNone(session.writer_task.exception())
        self.assertTrue(session.is_closed)
        session.writer.transport.abort.assert_called_once()

    async def test_close_is_idempotent(self):
        session = make_session(self.config, "alice")
        session.close()
        session.close()
        self.assertEqual(session.outbound.qsize(), 1)


class TestBroadcaster(unittest.IsolatedAsyncioTestCase):
    """Test cases for room fan-out."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.config = ServerConfig(data_dir=self.tmp.name)
        self.config.outbound_queue_size = 2
        self.rooms = RoomRegistry()
        self.history = HistoryStore(self.config.history_dir)
        self.broadcaster = Broadcaster(self.rooms, self.history)

    def tearDown(self):
        self.tmp.cleanup()

    def add(self, username, room, port):
        session = make_session(self.config, username, port)
        session.room = room
        self.rooms.join(room, session)
        return session

    async def test_delivers_to_room_members_only(self):
        alice = self.add("alice", "study", 1)
        bob = self.add("bob", "study", 2)
        carol = self.add("carol", "lobby", 3)

        count = await self.broadcaster.broadcast("study", "hello", persist=False)

        self.assertEqual(count, 2)
        self.assertEqual(drain(alice), ["hello"])
        self.assertEqual(drain(bob), ["hello"])
        self.assertEqual(drain(carol), [])

    async def test_persist_flag(self):
        self.add("alice", "study", 1)
        await self.broadcaster.broadcast("study", "kept", persist=True)
        await self.broadcaster.broadcast("study", "not kept", persist=False)
        self.assertEqual(await self.history.tail("study", 10), ["kept"])

    async def test_broadcast_to_empty_room_still_persists(self):
        self.assertEqual(await self.broadcaster.broadcast("ghost", "echo", persist=True), 0)
        self.assertEqual(await self.history.tail("ghost", 10), ["echo"])

    async def test_late_joiner_does_not_receive(self):
        alice = self.add("alice", "study", 1)
        pending = asyncio.ensure_future(self.broadcaster.broadcast("study", "before", persist=True))
        await asyncio.sleep(0)
        late = self.add("bob", "study", 2)
        await pending
        self.assertEqual(drain(alice), ["before"])
        self.assertEqual(drain(late), [])

    async def test_stalled_member_does_not_block_others(self):
        stalled = self.add("stalled", "study", 1)
        healthy = self.add("healthy", "study", 2)
        stalled.deliver("old 1")
        stalled.deliver("old 2")

        await asyncio.wait_for(self.broadcaster.broadcast("study", "news", persist=False), 1)

        self.assertEqual(drain(healthy), ["news"])
        self.assertEqual(drain(stalled), ["old 2", "news"])

    async def test_delivery_survives_history_failure(self):
        alice = self.add("alice", "study", 1)
        self.history.history_dir = Path(self.tmp.name) / "missing" / "dir"
        await self.broadcaster.broadcast("study", "still delivered", persist=True)
        self.assertEqual(drain(alice), ["still delivered"])


if __name__ == '__main__':
    unittest.main()
