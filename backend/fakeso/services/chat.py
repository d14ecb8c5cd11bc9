"""Chat aggregate service.

Chats store participant usernames and an ordered list of message ids.
Messages are always written before the chat row that references them, so a
failure can leave an orphaned message but never a chat pointing at a missing
one.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from flask import current_app

from fakeso import store
from fakeso.errors import (
    ChatNotFoundError,
    FakeSOError,
    InvalidRequestError,
    PersistenceError,
    UserNotFoundError,
)
from fakeso.services import get_broadcaster
from fakeso.services.broadcaster import CHAT_CREATED, CHAT_NEW_MESSAGE
from fakeso.services.locks import KeyedLock


DIRECT_MESSAGE = 'direct'

_chat_locks = KeyedLock()


def _is_blank(value) -> bool:
    return not isinstance(value, str) or value.strip() == ''


def parse_timestamp(value) -> datetime:
    """Accept a datetime, an ISO-8601 string or None (meaning now)."""
    if value is None or value == '':
        return datetime.now(timezone.utc)
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str):
        raw = value.strip()
        if raw.endswith('Z'):
            raw = raw[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            raise InvalidRequestError(f'Invalid message timestamp: {value!r}')
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    raise InvalidRequestError(f'Invalid message timestamp: {value!r}')


def _validate_message(content, sender) -> None:
    if _is_blank(content):
        raise InvalidRequestError('Message content must not be empty')
    if _is_blank(sender):
        raise InvalidRequestError('Message sender must not be empty')


def _unique(items: Iterable[str]) -> List[str]:
    seen = set()
    out = []
    for item in items:
        if item not in seen:
            seen.add(item)
            out.append(item)
    return out


def hydrate_chat(chat) -> Dict[str, Any]:
    """Expand a stored chat into participants plus ordered, sender-annotated messages."""
    message_ids = chat.message_id_list
    messages = store.find_messages(message_ids)
    if len(messages) != len(message_ids):
        found = {m.id for m in messages}
        missing = [i for i in message_ids if i not in found]
        raise PersistenceError(f'Chat {chat.id} references unknown messages {missing}')

    senders = {u.username: u for u in store.find_users_by_username(_unique(m.msg_from for m in messages))}
    payload = chat.to_dict()
    hydrated = []
    for message in messages:
        item = message.to_dict()
        user = senders.get(message.msg_from)
        item['user'] = user.to_dict() if user else None
        hydrated.append(item)
    payload['messages'] = hydrated
    return payload


def create_chat(participants, messages: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    if not isinstance(participants, (list, tuple)) or not participants:
        raise InvalidRequestError('participants must be a non-empty list')
    if any(_is_blank(p) for p in participants):
        raise InvalidRequestError('participants must be non-empty strings')
    messages = messages or []
    if not isinstance(messages, (list, tuple)):
        raise InvalidRequestError('messages must be a list')

    # Validate everything before the first write
    prepared = []
    for m in messages:
        if not isinstance(m, dict):
            raise InvalidRequestError('Each message must be an object')
        _validate_message(m.get('msg'), m.get('msg_from'))
        prepared.append((m['msg'], m['msg_from'], parse_timestamp(m.get('msg_date_time'))))

    message_ids = []
    for content, sender, ts in prepared:
        message_ids.append(store.create_message(content, sender, ts, DIRECT_MESSAGE).id)
    try:
        chat = store.create_chat(_unique(participants), message_ids)
    except PersistenceError:
        if message_ids:
            current_app.logger.warning(f"[chat] create failed, orphaned messages={message_ids}")
        raise

    hydrated = hydrate_chat(chat)
    current_app.logger.info(
        f"[chat] created chat={chat.id} participants={len(chat.participant_list)} messages={len(message_ids)}"
    )
    get_broadcaster().publish_chat_update(CHAT_CREATED, hydrated)
    return hydrated


def get_chat(chat_id) -> Dict[str, Any]:
    chat = store.find_chat_by_id(chat_id)
    if chat is None:
        raise ChatNotFoundError(f'Chat {chat_id} not found')
    return hydrate_chat(chat)


def append_message(chat_id, content, sender, timestamp=None) -> Dict[str, Any]:
    _validate_message(content, sender)
    ts = parse_timestamp(timestamp)

    with _chat_locks.hold(str(chat_id)):
        if store.find_chat_by_id(chat_id) is None:
            raise ChatNotFoundError(f'Chat {chat_id} not found')

        message = store.create_message(content, sender, ts, DIRECT_MESSAGE)
        try:
            chat = store.append_message_id(chat_id, message.id)
        except PersistenceError:
            current_app.logger.warning(f"[chat] append failed chat={chat_id}, orphaned message={message.id}")
            raise
        if chat is None:
            current_app.logger.warning(f"[chat] chat={chat_id} vanished, orphaned message={message.id}")
            raise ChatNotFoundError(f'Chat {chat_id} not found')

        hydrated = hydrate_chat(chat)
        current_app.logger.info(f"[chat] message chat={chat.id} from={sender} message={message.id}")
        # Publish inside the lock so room order matches acceptance order
        get_broadcaster().publish_chat_update(CHAT_NEW_MESSAGE, hydrated)
    return hydrated


def add_participant(chat_id, user_id) -> Dict[str, Any]:
    # bool is an int subclass; True would resolve to user 1
    if isinstance(user_id, bool) or (_is_blank(user_id) and not isinstance(user_id, int)):
        raise InvalidRequestError('user_id is required')
    user = store.resolve_user(user_id)
    if user is None:
        raise UserNotFoundError(f'User {user_id} not found')

    with _chat_locks.hold(str(chat_id)):
        chat = store.add_participant(chat_id, user.username)
        if chat is None:
            raise ChatNotFoundError(f'Chat {chat_id} not found')
        current_app.logger.info(f"[chat] participant chat={chat.id} user={user.username}")
        return hydrate_chat(chat)


def list_chats_for(username) -> List[Dict[str, Any]]:
    if _is_blank(username):
        raise InvalidRequestError('username is required')
    results = []
    for chat in store.find_chats_by_participant(username):
        try:
            results.append(hydrate_chat(chat))
        except FakeSOError as exc:
            # One broken chat must not hide the rest
            current_app.logger.warning(f"[chat] hydrate failed chat={chat.id}: {exc.message}")
            item = {'id': str(chat.id)}
            item.update(exc.to_dict())
            results.append(item)
    return results
