"""
Room membership registry.

Like SessionRegistry, every method runs without suspending, so a broadcast
that takes a members() snapshot sees a session either fully joined or fully
gone. Sessions are expected to expose a mutable ``room`` attribute.
"""

from typing import Dict, FrozenSet, List, Set

from common.constants import DEFAULT_ROOM


class RoomRegistry:
    """room name -> set of member sessions."""

    def __init__(self, default_room: str = DEFAULT_ROOM):
        self.default_room = default_room
        self.rooms: Dict[str, Set[object]] = {default_room: set()}

    def join(self, room: str, session):
        self.rooms.setdefault(room, set()).add(session)

    def leave(self, room: str, session):
        members = self.rooms.get(room)
        if members is not None:
            members.discard(session)

    def move(self, session, target: str) -> str:
        """Move `session` from its current room to `target`; returns the old room."""
        previous = session.room
        self.leave(previous, session)
        session.room = target
        self.join(target, session)
        return previous

    def members(self, room: str) -> FrozenSet[object]:
        return frozenset(self.rooms.get(room, ()))

    def list_rooms(self) -> List[str]:
        # Empty rooms are kept; their history outlives the members.
        return sorted(self.rooms)

    def rooms_of(self, session) -> List[str]:
        """Every room listing `session` as a member (one at most when consistent)."""
        return [room for room, members in self.rooms.items() if session in members]
