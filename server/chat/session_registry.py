"""
Online user registry.

All methods are plain (non-async) and contain no await, so when called from
the event loop each one runs to completion before any other session is
scheduled. That makes try_register an atomic compare-and-insert and every
listing a consistent snapshot.
"""

from typing import Dict, List, Optional


class SessionRegistry:
    """username -> active session, at most one session per username."""

    def __init__(self):
        self.sessions: Dict[str, object] = {}

    def try_register(self, username: str, session) -> bool:
        """Claim `username` for `session`. False if it is already online."""
        if username in self.sessions:
            return False
        self.sessions[username] = session
        return True

    def remove(self, username: str, session) -> bool:
        """Release `username` only if `session` is the current holder."""
        if self.sessions.get(username) is not session:
            return False
        del self.sessions[username]
        return True

    def get(self, username: str) -> Optional[object]:
        return self.sessions.get(username)

    def list_usernames(self) -> List[str]:
        return sorted(self.sessions)

    def count(self) -> int:
        return len(self.sessions)
