"""Persistence operations used by the chat and game services.

Each function commits its own unit of work: a single row is written
atomically, nothing is transactional across rows. SQLAlchemy failures are
rolled back, logged and re-raised as ``PersistenceError``.
"""

from functools import wraps
from typing import List, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from fakeso import db
from fakeso.errors import PersistenceError
from fakeso.models import Chat, Game, Message, User


def _persistence(op):
    @wraps(op)
    def wrapper(*args, **kwargs):
        try:
            return op(*args, **kwargs)
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception(f"[store] {op.__name__} failed")
            raise PersistenceError(f'{op.__name__} failed: {exc}') from exc
    return wrapper


# ---- Users ----

@_persistence
def create_user(username: str) -> User:
    user = User(username=username)
    db.session.add(user)
    db.session.commit()
    return user


@_persistence
def resolve_user(user_id) -> Optional[User]:
    try:
        pk = int(user_id)
    except (TypeError, ValueError):
        return None
    return db.session.get(User, pk)


@_persistence
def find_user_by_username(username: str) -> Optional[User]:
    return User.query.filter_by(username=username).first()


@_persistence
def find_users_by_username(usernames: List[str]) -> List[User]:
    if not usernames:
        return []
    return User.query.filter(User.username.in_(usernames)).all()


# ---- Messages ----

@_persistence
def create_message(msg: str, msg_from: str, msg_date_time, msg_type: str = 'direct') -> Message:
    message = Message(msg=msg, msg_from=msg_from, msg_date_time=msg_date_time, type=msg_type)
    db.session.add(message)
    db.session.commit()
    return message


@_persistence
def find_messages(message_ids: List[int]) -> List[Message]:
    """Return messages in the order of ``message_ids``, skipping unknown ids."""
    if not message_ids:
        return []
    rows = {m.id: m for m in Message.query.filter(Message.id.in_(message_ids)).all()}
    return [rows[i] for i in message_ids if i in rows]


# ---- Chats ----

@_persistence
def create_chat(participants: List[str], message_ids: List[int]) -> Chat:
    chat = Chat()
    chat.participant_list = participants
    chat.message_id_list = message_ids
    db.session.add(chat)
    db.session.commit()
    return chat


def _chat_pk(chat_id):
    try:
        return int(chat_id)
    except (TypeError, ValueError):
        return None


@_persistence
def find_chat_by_id(chat_id) -> Optional[Chat]:
    pk = _chat_pk(chat_id)
    if pk is None:
        return None
    return db.session.get(Chat, pk)


@_persistence
def append_message_id(chat_id, message_id: int) -> Optional[Chat]:
    chat = find_chat_by_id(chat_id)
    if chat is None:
        return None
    chat.message_id_list = chat.message_id_list + [message_id]
    db.session.add(chat)
    db.session.commit()
    return chat


@_persistence
def add_participant(chat_id, username: str) -> Optional[Chat]:
    chat = find_chat_by_id(chat_id)
    if chat is None:
        return None
    participants = chat.participant_list
    if username not in participants:
        chat.participant_list = participants + [username]
        db.session.add(chat)
        db.session.commit()
    return chat


@_persistence
def find_chats_by_participant(username: str) -> List[Chat]:
    # Participants are stored as a JSON list; narrow with LIKE, then match exactly
    candidates = Chat.query.filter(Chat.participants.contains(username)).order_by(Chat.id).all()
    return [c for c in candidates if username in c.participant_list]


# ---- Games ----

@_persistence
def create_game(game_type: str, initial_pile: int) -> Game:
    game = Game(game_type=game_type, initial_pile=initial_pile, remaining_objects=initial_pile)
    db.session.add(game)
    db.session.commit()
    return game


@_persistence
def find_game(game_id) -> Optional[Game]:
    if not game_id:
        return None
    return db.session.get(Game, str(game_id).upper())


@_persistence
def save_game(row: Game, game) -> Game:
    row.update_from(game)
    db.session.add(row)
    db.session.commit()
    return row


@_persistence
def find_games(game_type: Optional[str] = None, status: Optional[str] = None) -> List[Game]:
    query = Game.query
    if game_type:
        query = query.filter_by(game_type=game_type)
    if status:
        query = query.filter_by(status=status)
    return query.order_by(Game.created_at).all()
