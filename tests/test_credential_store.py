#!/usr/bin/env python3
"""
Unit tests for server/auth/credential_store.py

Tests registration, verification, persistence of hashed records and the
single-winner guarantee for concurrent registrations.
"""

import asyncio
import os
import tempfile
import unittest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from server.auth.credential_store import CredentialStore, hash_password, verify_password


class TestPasswordHashing(unittest.TestCase):
    """Test cases for the scrypt record helpers."""

    def test_round_trip(self):
        record = hash_password("s3cret")
        self.assertTrue(record.startswith("scrypt$"))
        self.assertTrue(verify_password("s3cret", record))
        self.assertFalse(verify_password("wrong", record))

    def test_salted(self):
        self.assertNotEqual(hash_password("same"), hash_password("same"))

    def test_malformed_record(self):
        self.assertFalse(verify_password("x", "plaintext"))
        self.assertFalse(verify_password("x", "md5$abc$def"))


class TestCredentialStore(unittest.IsolatedAsyncioTestCase):
    """Test cases for the file-backed credential store."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.users_file = os.path.join(self.tmp.name, "users.txt")
        self.store = CredentialStore(self.users_file)

    def tearDown(self):
        self.tmp.cleanup()

    async def test_register_then_verify(self):
        self.assertTrue(await self.store.register("alice", "p1"))
        self.assertTrue(await self.store.verify("alice", "p1"))
        self.assertFalse(await self.store.verify("alice", "p2"))
        self.assertFalse(await self.store.verify("nobody", "p1"))

    async def test_duplicate_register_rejected(self):
        self.assertTrue(await self.store.register("alice", "p1"))
        self.assertFalse(await self.store.register("alice", "other"))
        self.assertTrue(await self.store.verify("alice", "p1"))

    async def test_password_not_stored_in_clear(self):
        await self.store.register("alice", "hunter2")
        content = Path(self.users_file).read_text(encoding='utf-8')
        self.assertIn("alice,scrypt$", content)
        self.assertNotIn("hunter2", content)

    async def test_records_survive_restart(self):
        await self.store.register("alice", "p1")
        reloaded = CredentialStore(self.users_file)
        self.assertTrue(await reloaded.verify("alice", "p1"))
        self.assertFalse(await reloaded.register("alice", "p1"))

    async def test_malformed_lines_skipped(self):
        await self.store.register("alice", "p1")
        with open(self.users_file, 'a', encoding='utf-8') as f:
            f.write("bob,cleartext\n\nnot a record\n")
        reloaded = CredentialStore(self.users_file)
        self.assertTrue(reloaded.exists("alice"))
        self.assertFalse(reloaded.exists("bob"))

    async def test_concurrent_register_single_winner(self):
        results = await asyncio.gather(*[
            self.store.register("dave", f"pw{i}") for i in range(5)
        ])
        self.assertEqual(results.count(True), 1)
        lines = Path(self.users_file).read_text(encoding='utf-8').splitlines()
        self.assertEqual(len([l for l in lines if l.startswith("dave,")]), 1)

    async def test_invalid_input_rejected(self):
        with self.assertRaises(ValueError):
            await self.store.register("a,b", "p1")
        with self.assertRaises(ValueError):
            await self.store.register("carol", "")
        self.assertFalse(await self.store.verify("alice", ""))


if __name__ == '__main__':
    unittest.main()
