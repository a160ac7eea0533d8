"""
Credential store module.

Keeps one line per user in a flat file, ``username,scrypt$<salt>$<key>``.
Passwords are never stored in clear text.
"""

import asyncio
import base64
import os
from pathlib import Path
from typing import Dict, Optional

from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from common.protocol_definitions import is_valid_name
from server.utils.logger import logger

SCRYPT_N = 16384
SCRYPT_R = 8
SCRYPT_P = 1
KEY_LEN = 32
SALT_LEN = 16
HASH_SCHEME = 'scrypt'


def _kdf(salt: bytes) -> Scrypt:
    return Scrypt(salt=salt, length=KEY_LEN, n=SCRYPT_N, r=SCRYPT_R, p=SCRYPT_P)


def hash_password(password: str) -> str:
    """Derive a salted scrypt record for `password`."""
    salt = os.urandom(SALT_LEN)
    key = _kdf(salt).derive(password.encode('utf-8'))
    return '$'.join([
        HASH_SCHEME,
        base64.b64encode(salt).decode('ascii'),
        base64.b64encode(key).decode('ascii'),
    ])


def verify_password(password: str, record: str) -> bool:
    """Check `password` against a record produced by hash_password."""
    try:
        scheme, salt_b64, key_b64 = record.split('$')
        if scheme != HASH_SCHEME:
            return False
        salt = base64.b64decode(salt_b64)
        key = base64.b64decode(key_b64)
    except ValueError:
        return False

    try:
        _kdf(salt).verify(password.encode('utf-8'), key)
        return True
    except InvalidKey:
        return False


class CredentialStore:
    """
    File-backed username -> password hash store.

    The file is read once at construction into an in-memory index; every
    registration appends one line. Registration holds an asyncio.Lock across
    the existence check, the append and the index update, so two sessions
    registering the same username resolve to exactly one winner. Hashing
    and file I/O run in worker threads to keep the event loop responsive.
    """

    def __init__(self, users_file: str):
        self.path = Path(users_file)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.records: Dict[str, str] = {}
        self.lock = asyncio.Lock()
        self._load()

    def _load(self):
        if not self.path.exists():
            return
        with open(self.path, 'r', encoding='utf-8') as f:
            for lineno, line in enumerate(f, 1):
                line = line.rstrip('\r\n')
                if not line:
                    continue
                username, sep, record = line.partition(',')
                if not sep or not is_valid_name(username) or not record.startswith(HASH_SCHEME + '$'):
                    logger.warning(f"Skipping malformed credential record at {self.path}:{lineno}")
                    continue
                self.records[username] = record
        logger.info(f"Loaded {len(self.records)} account(s) from {self.path}")

    def _append(self, username: str, record: str):
        with open(self.path, 'a', encoding='utf-8') as f:
            f.write(f"{username},{record}\n")

    def exists(self, username: str) -> bool:
        return username in self.records

    async def register(self, username: str, password: str) -> bool:
        """Register a new account. Returns False if the username is taken."""
        if not is_valid_name(username):
            raise ValueError(f"invalid username: {username!r}")
        if not password:
            raise ValueError("password must not be empty")

        if self.exists(username):
            return False

        record = await asyncio.to_thread(hash_password, password)

        async with self.lock:
            if self.exists(username):
                return False
            await asyncio.to_thread(self._append, username, record)
            self.records[username] = record
        return True

    async def verify(self, username: str, password: str) -> bool:
        """Check a username/password pair."""
        record: Optional[str] = self.records.get(username)
        if record is None or not password:
            return False
        return await asyncio.to_thread(verify_password, password, record)
