"""Subscriber-side view synchronization for chat and game screens.

The adapters keep local view state in step with the server. The server is
authoritative: every push update replaces the local copy, nothing is merged.
Transport is anything with ``emit(event, data)``, typically a
``socketio.Client`` connected to the ``/ws`` namespace; request/response
calls are injected as plain callables so the same logic runs against the
HTTP API or a test double.

Ordering on teardown matters: ``unmount`` leaves the room first and only
then stops accepting updates, and every handler checks the mounted flag, so
an update that arrives late cannot bring back state for a closed view.
"""

import logging
import threading
from typing import Any, Callable, Dict, List, Optional


logger = logging.getLogger(__name__)

Fetch = Callable[..., Any]


class _ViewSync:
    def __init__(self, socket, namespace: Optional[str] = None):
        self.socket = socket
        self.namespace = namespace
        self.mounted = False
        self._lock = threading.RLock()

    def _emit(self, event: str, data: Any) -> None:
        if self.namespace is None:
            self.socket.emit(event, data)
        else:
            self.socket.emit(event, data, namespace=self.namespace)

    def attach(self, client) -> None:
        """Register the push handlers on a ``socketio.Client``."""
        for event, handler in self.handlers().items():
            client.on(event, handler, namespace=self.namespace or '/')

    def handlers(self) -> Dict[str, Callable[[Dict[str, Any]], None]]:
        raise NotImplementedError


class ChatSync(_ViewSync):
    """Chat list plus the currently open chat for one user."""

    def __init__(self, socket, username: str, fetch_chats: Fetch, fetch_chat: Fetch,
                 namespace: Optional[str] = None):
        super().__init__(socket, namespace)
        self.username = username
        self.fetch_chats = fetch_chats
        self.fetch_chat = fetch_chat
        self.chats: List[Dict[str, Any]] = []
        self.selected: Optional[Dict[str, Any]] = None

    def handlers(self):
        return {'chat_update': self.on_chat_update}

    def mount(self) -> None:
        chats = self.fetch_chats(self.username)
        with self._lock:
            # Entries that failed to load carry an 'error' key; skip them
            self.chats = [c for c in chats if 'error' not in c]
            self.mounted = True

    def select_chat(self, chat_id: Optional[str]) -> None:
        if not chat_id or not self.mounted:
            return
        previous = self.selected['id'] if self.selected else None
        if previous and previous != chat_id:
            self._emit('leave_chat', previous)
        self._emit('join_chat', chat_id)
        try:
            chat = self.fetch_chat(chat_id)
        except Exception:
            self._emit('leave_chat', chat_id)
            raise
        with self._lock:
            if self.mounted:
                self.selected = chat
                return
        # Unmounted while fetching; drop the subscription just made
        self._emit('leave_chat', chat_id)

    def on_chat_update(self, payload: Dict[str, Any]) -> None:
        with self._lock:
            if not self.mounted:
                return
            kind = payload.get('type')
            chat = payload.get('chat') or {}
            if kind == 'created':
                if not any(c.get('id') == chat.get('id') for c in self.chats):
                    self.chats.append(chat)
            elif kind == 'new_message':
                if self.selected and self.selected.get('id') == chat.get('id'):
                    self.selected = chat
                self.chats = [chat if c.get('id') == chat.get('id') else c for c in self.chats]
            else:
                raise ValueError(f'Invalid chat update type: {kind}')

    def unmount(self) -> None:
        if self.selected and self.selected.get('id'):
            self._emit('leave_chat', self.selected['id'])
        with self._lock:
            self.mounted = False
            self.selected = None


class GameSync(_ViewSync):
    """Authoritative game snapshot for one player's game view."""

    def __init__(self, socket, username: str, fetch_game: Fetch, namespace: Optional[str] = None):
        super().__init__(socket, namespace)
        self.username = username
        self.fetch_game = fetch_game
        self.game_id: Optional[str] = None
        self.game: Optional[Dict[str, Any]] = None
        self.error: Optional[str] = None

    def handlers(self):
        return {'game_update': self.on_game_update, 'game_error': self.on_game_error}

    def mount(self, game_id: str) -> None:
        self.game_id = game_id
        self._emit('join_game', game_id)
        try:
            game = self.fetch_game(game_id)
        except Exception:
            # Never mounted, so nothing else will leave the room
            self._emit('leave_game', game_id)
            raise
        with self._lock:
            self.game = game
            self.error = None
            self.mounted = True

    def on_game_update(self, payload: Dict[str, Any]) -> None:
        with self._lock:
            if not self.mounted or payload.get('game_id') != self.game_id:
                return
            self.game = payload.get('game_state')

    def on_game_error(self, payload: Dict[str, Any]) -> None:
        with self._lock:
            if not self.mounted or payload.get('game_id') != self.game_id:
                return
            if payload.get('player') == self.username:
                self.error = payload.get('error')

    def current_player(self) -> Optional[str]:
        if not self.game:
            return None
        state = self.game.get('state') or {}
        status = state.get('status')
        if status == 'IN_PROGRESS':
            players = self.game.get('players') or []
            if not players:
                return None
            return players[len(state.get('moves') or []) % len(players)]
        if status in ('WAITING_TO_START', 'OVER'):
            return None
        raise ValueError(f'Unknown game status: {status}')

    def can_move(self) -> bool:
        return self.current_player() == self.username

    def make_move(self, count: int) -> None:
        """Send a move; the resulting state arrives as a ``game_update``."""
        if not self.mounted or not self.game_id:
            return
        self.error = None
        self._emit('make_move', {'game_id': self.game_id, 'player_id': self.username, 'count': count})

    def unmount(self) -> None:
        if self.game_id:
            self._emit('leave_game', self.game_id)
        with self._lock:
            self.mounted = False
            logger.debug('left game %s', self.game_id)
