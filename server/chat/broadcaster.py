"""
Room fan-out module.
"""

from server.chat.history_store import HistoryStore
from server.chat.room_registry import RoomRegistry


class Broadcaster:
    """Deliver a line to every member of a room, optionally persisting it."""

    def __init__(self, rooms: RoomRegistry, history: HistoryStore):
        self.rooms = rooms
        self.history = history

    def _fan_out(self, room: str, line: str) -> int:
        delivered = 0
        for session in self.rooms.members(room):
            if session.deliver(line):
                delivered += 1
        return delivered

    async def broadcast(self, room: str, line: str, persist: bool = True) -> int:
        """
        Send `line` to the members of `room` and return how many got it.

        Delivery only enqueues onto each member's outbound queue, so a slow
        peer never holds up the others. A persisted line is fanned out under
        the room's history lock, just before it is written: the room's
        delivery order equals its file order, and a member joining under the
        same lock sees the line either in its replayed history or live.
        """
        if not persist:
            return self._fan_out(room, line)

        delivered = 0

        def fan_out():
            nonlocal delivered
            delivered = self._fan_out(room, line)

        await self.history.append(room, line, on_locked=fan_out)
        return delivered
