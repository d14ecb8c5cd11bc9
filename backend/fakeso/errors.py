"""Typed failures shared by the HTTP routes, socket handlers and services.

Every error carries an HTTP status and a stable ``kind`` so that both the
request/response surface and the ``game_error`` push event can report it as
``{'error': kind, 'message': text}``.
"""

from typing import Any, Dict, Optional


class FakeSOError(Exception):
    status_code = 500
    kind = 'error'

    def __init__(self, message: str = '', user_id: Optional[str] = None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__
        # Acting user, when the failure belongs to one
        self.user_id = user_id

    def to_dict(self) -> Dict[str, Any]:
        return {'error': self.kind, 'message': self.message}


class InvalidRequestError(FakeSOError):
    status_code = 400
    kind = 'invalid_request'


class NotFoundError(FakeSOError):
    status_code = 404
    kind = 'not_found'


class ChatNotFoundError(NotFoundError):
    kind = 'chat_not_found'


class GameNotFoundError(NotFoundError):
    kind = 'game_not_found'


class UserNotFoundError(NotFoundError):
    kind = 'user_not_found'


class PlayerNotInGameError(NotFoundError):
    kind = 'player_not_in_game'


class ConflictError(FakeSOError):
    status_code = 409
    kind = 'conflict'


class GameFullError(ConflictError):
    kind = 'game_full'


class AlreadyJoinedError(ConflictError):
    kind = 'already_joined'


class TurnOrderError(FakeSOError):
    status_code = 409
    kind = 'turn_order'


class NotYourTurnError(TurnOrderError):
    kind = 'not_your_turn'


class StateError(FakeSOError):
    status_code = 409
    kind = 'state'


class GameNotInProgressError(StateError):
    kind = 'game_not_in_progress'


class InvalidMoveError(StateError):
    kind = 'invalid_move'


class PersistenceError(FakeSOError):
    status_code = 500
    kind = 'persistence'

    def to_dict(self) -> Dict[str, Any]:
        # Storage details stay in the server log
        return {'error': self.kind, 'message': 'Internal storage failure'}
