"""Room membership for Socket.IO connections.

Rooms are plain strings. Chat and game rooms are namespaced so that a chat
id never collides with a game id.
"""

import threading
from collections import defaultdict
from typing import DefaultDict, Dict, FrozenSet, Optional, Set


LOBBY_ROOM = 'games:lobby'


def chat_room(chat_id) -> str:
    return f"chat:{chat_id}"


def game_room(game_id) -> str:
    return f"game:{str(game_id).upper()}"


class RoomRegistry:
    """Tracks which connections are subscribed to which rooms.

    Only the connection lifecycle (join, leave, disconnect) writes here; the
    broadcaster reads snapshots.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._members: DefaultDict[str, Set[str]] = defaultdict(set)
        self._rooms: DefaultDict[str, Set[str]] = defaultdict(set)
        self._user_of: Dict[str, str] = {}
        self._connections_of: DefaultDict[str, Set[str]] = defaultdict(set)

    def subscribe(self, connection: str, room_id: str) -> None:
        with self._lock:
            self._members[room_id].add(connection)
            self._rooms[connection].add(room_id)

    def unsubscribe(self, connection: str, room_id: str) -> None:
        with self._lock:
            members = self._members.get(room_id)
            if members is None or connection not in members:
                return
            members.discard(connection)
            if not members:
                del self._members[room_id]
            rooms = self._rooms.get(connection)
            if rooms is not None:
                rooms.discard(room_id)
                if not rooms:
                    del self._rooms[connection]

    def subscribers_of(self, room_id: str) -> FrozenSet[str]:
        with self._lock:
            return frozenset(self._members.get(room_id, ()))

    def rooms_of(self, connection: str) -> FrozenSet[str]:
        with self._lock:
            return frozenset(self._rooms.get(connection, ()))

    def bind_user(self, connection: str, user_id: str) -> None:
        """Record which user owns a connection (one user per connection)."""
        with self._lock:
            previous = self._user_of.get(connection)
            if previous == user_id:
                return
            if previous is not None:
                self._drop_user_binding(connection, previous)
            self._user_of[connection] = user_id
            self._connections_of[user_id].add(connection)

    def user_of(self, connection: str) -> Optional[str]:
        with self._lock:
            return self._user_of.get(connection)

    def connections_of(self, user_id: str) -> FrozenSet[str]:
        with self._lock:
            return frozenset(self._connections_of.get(user_id, ()))

    def teardown(self, connection: str) -> FrozenSet[str]:
        """Forget a closed connection everywhere. Returns the rooms it left."""
        with self._lock:
            rooms = frozenset(self._rooms.pop(connection, ()))
            for room_id in rooms:
                members = self._members.get(room_id)
                if members is None:
                    continue
                members.discard(connection)
                if not members:
                    del self._members[room_id]
            user_id = self._user_of.get(connection)
            if user_id is not None:
                self._drop_user_binding(connection, user_id)
            return rooms

    def _drop_user_binding(self, connection: str, user_id: str) -> None:
        self._user_of.pop(connection, None)
        conns = self._connections_of.get(user_id)
        if conns is not None:
            conns.discard(connection)
            if not conns:
                del self._connections_of[user_id]
