"""Nim (misère) game state machine.

Pure domain logic: no database, no sockets. The manager loads a ``NimGame``
from storage, calls one transition on it and saves the result back.

Rules: players alternate removing 1, 2 or 3 objects from a single pile. The
player who takes the last object loses.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from fakeso.errors import (
    AlreadyJoinedError,
    GameFullError,
    GameNotInProgressError,
    InvalidMoveError,
    NotYourTurnError,
    PlayerNotInGameError,
)


GAME_TYPE = 'Nim'
MIN_TAKE = 1
MAX_TAKE = 3


class GameStatus(str, Enum):
    WAITING_TO_START = 'WAITING_TO_START'
    IN_PROGRESS = 'IN_PROGRESS'
    OVER = 'OVER'


@dataclass(frozen=True)
class Move:
    player: str
    num_objects: int
    remaining: int

    def to_dict(self) -> Dict[str, Any]:
        return {'player': self.player, 'num_objects': self.num_objects, 'remaining': self.remaining}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Move':
        return cls(player=data['player'], num_objects=int(data['num_objects']), remaining=int(data['remaining']))


@dataclass(frozen=True)
class WaitingToStart:
    status = GameStatus.WAITING_TO_START


@dataclass(frozen=True)
class InProgress:
    moves: Tuple[Move, ...]
    remaining_objects: int
    status = GameStatus.IN_PROGRESS


@dataclass(frozen=True)
class Over:
    winners: Tuple[str, ...]
    moves: Tuple[Move, ...]
    remaining_objects: int
    status = GameStatus.OVER


GameState = Union[WaitingToStart, InProgress, Over]


def state_to_dict(state: GameState, initial_pile: int) -> Dict[str, Any]:
    if isinstance(state, WaitingToStart):
        return {'status': state.status.value, 'remaining_objects': initial_pile}
    if isinstance(state, InProgress):
        return {
            'status': state.status.value,
            'moves': [m.to_dict() for m in state.moves],
            'remaining_objects': state.remaining_objects,
        }
    if isinstance(state, Over):
        return {
            'status': state.status.value,
            'winners': list(state.winners),
            'moves': [m.to_dict() for m in state.moves],
            'remaining_objects': state.remaining_objects,
        }
    raise TypeError(f'Unknown game state: {state!r}')


def state_from_fields(status: str, moves: List[Move], remaining: int, winners: List[str]) -> GameState:
    status = GameStatus(status)
    if status is GameStatus.WAITING_TO_START:
        return WaitingToStart()
    if status is GameStatus.IN_PROGRESS:
        return InProgress(moves=tuple(moves), remaining_objects=remaining)
    if status is GameStatus.OVER:
        return Over(winners=tuple(winners), moves=tuple(moves), remaining_objects=remaining)
    raise TypeError(f'Unknown game status: {status!r}')


@dataclass
class NimGame:
    game_id: str
    initial_pile: int
    players: List[str] = field(default_factory=list)
    state: GameState = field(default_factory=WaitingToStart)
    max_players: int = 2

    @property
    def status(self) -> GameStatus:
        return self.state.status

    @property
    def moves(self) -> Tuple[Move, ...]:
        if isinstance(self.state, WaitingToStart):
            return ()
        return self.state.moves

    @property
    def remaining_objects(self) -> int:
        if isinstance(self.state, WaitingToStart):
            return self.initial_pile
        return self.state.remaining_objects

    def current_player(self) -> Optional[str]:
        """Player expected to move next, or None outside IN_PROGRESS."""
        if not isinstance(self.state, InProgress) or not self.players:
            return None
        return self.players[len(self.state.moves) % len(self.players)]

    def join(self, user_id: str) -> None:
        if user_id in self.players:
            raise AlreadyJoinedError(f'{user_id} has already joined this game', user_id=user_id)
        if len(self.players) >= self.max_players:
            raise GameFullError('Game is full', user_id=user_id)
        if not isinstance(self.state, WaitingToStart):
            raise GameNotInProgressError('Game is no longer accepting players', user_id=user_id)
        self.players.append(user_id)
        if len(self.players) == self.max_players:
            self.state = InProgress(moves=(), remaining_objects=self.initial_pile)

    def apply_move(self, user_id: str, count: Any) -> Move:
        state = self.state
        if not isinstance(state, InProgress):
            raise GameNotInProgressError('Game is not in progress', user_id=user_id)
        if user_id != self.current_player():
            raise NotYourTurnError('It is not your turn', user_id=user_id)
        # bool is an int subclass; reject it explicitly
        if isinstance(count, bool) or not isinstance(count, int) or not MIN_TAKE <= count <= MAX_TAKE:
            raise InvalidMoveError(f'You must remove between {MIN_TAKE} and {MAX_TAKE} objects', user_id=user_id)
        if count > state.remaining_objects:
            raise InvalidMoveError(
                f'Cannot remove {count} objects, only {state.remaining_objects} remain', user_id=user_id
            )

        remaining = state.remaining_objects - count
        move = Move(player=user_id, num_objects=count, remaining=remaining)
        moves = state.moves + (move,)
        if remaining == 0:
            # Taking the last object loses
            winners = tuple(p for p in self.players if p != user_id)
            self.state = Over(winners=winners, moves=moves, remaining_objects=0)
        else:
            self.state = InProgress(moves=moves, remaining_objects=remaining)
        return move

    def leave(self, user_id: str) -> None:
        state = self.state
        if isinstance(state, Over):
            return
        if user_id not in self.players:
            raise PlayerNotInGameError(f'{user_id} is not in this game', user_id=user_id)
        self.players.remove(user_id)
        if isinstance(state, InProgress):
            # Forfeit: whoever is left wins
            self.state = Over(
                winners=tuple(self.players), moves=state.moves, remaining_objects=state.remaining_objects
            )
        elif isinstance(state, WaitingToStart):
            pass
        else:
            raise TypeError(f'Unknown game state: {state!r}')

    def to_dict(self) -> Dict[str, Any]:
        return {
            'game_id': self.game_id,
            'game_type': GAME_TYPE,
            'players': list(self.players),
            'initial_pile': self.initial_pile,
            'state': state_to_dict(self.state, self.initial_pile),
        }
