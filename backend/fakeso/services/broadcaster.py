"""Push updates for chats and games to subscribed Socket.IO connections.

Targets are resolved from the ``RoomRegistry`` at publish time, and every
emission for a room happens under that room's lock, so subscribers of one
room see updates in the order they were published.
"""

import logging
from typing import Any, Dict, Iterable, Optional

from fakeso.errors import FakeSOError
from fakeso.services.locks import KeyedLock
from fakeso.services.rooms import LOBBY_ROOM, RoomRegistry, chat_room, game_room


CHAT_UPDATE = 'chat_update'
GAME_UPDATE = 'game_update'
GAME_ERROR = 'game_error'

CHAT_CREATED = 'created'
CHAT_NEW_MESSAGE = 'new_message'
CHAT_UPDATE_KINDS = (CHAT_CREATED, CHAT_NEW_MESSAGE)

# Room key used to order global (every connection) broadcasts
_GLOBAL = '*'


class Broadcaster:
    def __init__(self, socketio, registry: RoomRegistry, namespace: str = '/ws',
                 logger: Optional[logging.Logger] = None):
        self.socketio = socketio
        self.registry = registry
        self.namespace = namespace
        self.logger = logger or logging.getLogger(__name__)
        self._room_locks = KeyedLock()

    def _emit_to(self, event: str, payload: Dict[str, Any], connections: Iterable[str]) -> int:
        sent = 0
        for sid in sorted(connections):
            self.socketio.emit(event, payload, to=sid, namespace=self.namespace)
            sent += 1
        return sent

    def publish_chat_update(self, kind: str, chat: Dict[str, Any]) -> None:
        if kind not in CHAT_UPDATE_KINDS:
            raise ValueError(f'Invalid chat update type: {kind}')
        payload = {'type': kind, 'chat': chat}
        if kind == CHAT_CREATED:
            # Recipients have not joined the room yet, so everyone gets it
            with self._room_locks.hold(_GLOBAL):
                self.socketio.emit(CHAT_UPDATE, payload, namespace=self.namespace)
            self.logger.info(f"[chat_update] type={kind} chat={chat.get('id')} to=all")
            return
        room = chat_room(chat['id'])
        with self._room_locks.hold(room):
            sent = self._emit_to(CHAT_UPDATE, payload, self.registry.subscribers_of(room))
        self.logger.info(f"[chat_update] type={kind} chat={chat.get('id')} subscribers={sent}")

    def publish_game_update(self, game_id: str, state: Dict[str, Any]) -> None:
        room = game_room(game_id)
        payload = {'game_id': game_id, 'game_state': state}
        with self._room_locks.hold(room):
            # A connection in both the game room and the lobby gets one copy
            targets = self.registry.subscribers_of(room) | self.registry.subscribers_of(LOBBY_ROOM)
            sent = self._emit_to(GAME_UPDATE, payload, targets)
        self.logger.info(f"[game_update] game={game_id} status={state.get('state', {}).get('status')} subscribers={sent}")

    def publish_game_error(self, game_id: str, user_id: Optional[str], error: FakeSOError,
                           origin: Optional[str] = None) -> None:
        """Send a rejected action back to the acting user only."""
        targets = set(self.registry.connections_of(user_id)) if user_id else set()
        if origin:
            targets.add(origin)
        payload = {'game_id': game_id, 'player': user_id, 'error': error.to_dict()['message'], 'kind': error.kind}
        sent = self._emit_to(GAME_ERROR, payload, targets)
        self.logger.info(f"[game_error] game={game_id} player={user_id} kind={error.kind} connections={sent}")
