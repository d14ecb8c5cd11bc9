"""Persisted game operations.

Each operation loads the row, rebuilds the ``NimGame`` state machine, applies
one transition and saves it back, all under the game's lock. The updated
snapshot is published before the lock is released so subscribers observe
moves in acceptance order.
"""

from typing import Any, Dict, List, Optional

from flask import current_app

from fakeso import store
from fakeso.errors import GameNotFoundError, InvalidRequestError
from fakeso.services import get_broadcaster
from fakeso.services.games.nim import GAME_TYPE, GameStatus
from fakeso.services.locks import KeyedLock


SUPPORTED_GAME_TYPES = (GAME_TYPE,)

_game_locks = KeyedLock()


def _max_players() -> int:
    try:
        return int(current_app.config.get('NIM_MAX_PLAYERS', 2))
    except (TypeError, ValueError):
        return 2


def _load(game_id):
    row = store.find_game(game_id)
    if row is None:
        raise GameNotFoundError(f'Game {game_id} not found')
    return row, row.to_game(max_players=_max_players())


def _require_user(user_id) -> str:
    if not isinstance(user_id, str) or not user_id.strip():
        raise InvalidRequestError('player id is required')
    return user_id


def create_game(game_type: str = GAME_TYPE, initial_pile_size: Optional[int] = None) -> Dict[str, Any]:
    if game_type not in SUPPORTED_GAME_TYPES:
        raise InvalidRequestError(f'Unsupported game type: {game_type}')
    if initial_pile_size is None:
        initial_pile_size = int(current_app.config.get('NIM_PILE_SIZE', 21))
    if isinstance(initial_pile_size, bool) or not isinstance(initial_pile_size, int) or initial_pile_size < 1:
        raise InvalidRequestError('initial pile size must be a positive integer')

    row = store.create_game(game_type, initial_pile_size)
    state = row.to_dict()
    current_app.logger.info(f"[create] game={row.id} type={game_type} pile={initial_pile_size}")
    get_broadcaster().publish_game_update(row.id, state)
    return state


def get_game(game_id) -> Dict[str, Any]:
    _, game = _load(game_id)
    return game.to_dict()


def list_games(game_type: Optional[str] = None, status: Optional[str] = None) -> List[Dict[str, Any]]:
    if status is not None and status not in GameStatus.__members__:
        raise InvalidRequestError(f'Unknown game status: {status}')
    return [row.to_dict() for row in store.find_games(game_type, status)]


def join(game_id, user_id) -> Dict[str, Any]:
    user_id = _require_user(user_id)
    with _game_locks.hold(str(game_id).upper()):
        row, game = _load(game_id)
        game.join(user_id)
        store.save_game(row, game)
        state = game.to_dict()
        current_app.logger.info(f"[join] game={game.game_id} player={user_id} status={game.status.value}")
        get_broadcaster().publish_game_update(game.game_id, state)
    return state


def apply_move(game_id, user_id, count) -> Dict[str, Any]:
    user_id = _require_user(user_id)
    with _game_locks.hold(str(game_id).upper()):
        row, game = _load(game_id)
        move = game.apply_move(user_id, count)
        store.save_game(row, game)
        state = game.to_dict()
        current_app.logger.info(
            f"[move] game={game.game_id} player={user_id} count={move.num_objects} remaining={move.remaining}"
        )
        if game.status is GameStatus.OVER:
            current_app.logger.info(f"[finish] game={game.game_id} winners={list(game.state.winners)}")
        get_broadcaster().publish_game_update(game.game_id, state)
    return state


def leave(game_id, user_id) -> Dict[str, Any]:
    user_id = _require_user(user_id)
    with _game_locks.hold(str(game_id).upper()):
        row, game = _load(game_id)
        if game.status is GameStatus.OVER:
            return game.to_dict()
        game.leave(user_id)
        store.save_game(row, game)
        state = game.to_dict()
        current_app.logger.info(f"[leave] game={game.game_id} player={user_id} status={game.status.value}")
        get_broadcaster().publish_game_update(game.game_id, state)
    return state
