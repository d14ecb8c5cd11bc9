from flask import current_app, request
from flask_socketio import emit

from fakeso import socketio
from fakeso.errors import FakeSOError, InvalidRequestError
from fakeso.services import get_broadcaster, get_registry
from fakeso.services.games import manager
from fakeso.services.rooms import LOBBY_ROOM, chat_room, game_room


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _room_id(data, key):
    """Room events accept either the bare id or ``{key: id}``."""
    if isinstance(data, dict):
        data = data.get(key)
    if isinstance(data, int) and not isinstance(data, bool):
        data = str(data)
    if not isinstance(data, str) or not data.strip():
        raise InvalidRequestError(f'{key} is required')
    return data.strip()


def handle_connect(auth=None):
    username = (auth or {}).get('username') if isinstance(auth, dict) else None
    if username:
        get_registry().bind_user(_get_sid(), username)
    current_app.logger.info(f"[connect] sid={_get_sid()} user={username}")
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(*args):
    sid = _get_sid()
    rooms = get_registry().teardown(sid)
    current_app.logger.info(f"[disconnect] sid={sid} rooms={len(rooms)}")


def handle_identify(data):
    try:
        username = _room_id(data, 'username')
    except InvalidRequestError as exc:
        emit('error', exc.to_dict())
        return
    get_registry().bind_user(_get_sid(), username)
    emit('identified', {'username': username})


def _join(room):
    get_registry().subscribe(_get_sid(), room)
    current_app.logger.info(f"[join_room] sid={_get_sid()} room={room}")
    emit('joined', {'room': room})


def _leave(room):
    get_registry().unsubscribe(_get_sid(), room)
    current_app.logger.info(f"[leave_room] sid={_get_sid()} room={room}")
    emit('left', {'room': room})


def _room_handler(key, room_for, action):
    def handler(data=None):
        try:
            room = room_for(_room_id(data, key))
        except InvalidRequestError as exc:
            emit('error', exc.to_dict())
            return
        action(room)
    return handler


handle_join_chat = _room_handler('chat_id', chat_room, _join)
handle_leave_chat = _room_handler('chat_id', chat_room, _leave)
handle_join_game = _room_handler('game_id', game_room, _join)
handle_leave_game = _room_handler('game_id', game_room, _leave)


def handle_join_lobby(data=None):
    _join(LOBBY_ROOM)


def handle_leave_lobby(data=None):
    _leave(LOBBY_ROOM)


def handle_make_move(data):
    data = data if isinstance(data, dict) else {}
    sid = _get_sid()
    registry = get_registry()
    game_id = data.get('game_id')
    player = data.get('player_id') or registry.user_of(sid)
    if player:
        registry.bind_user(sid, player)
    try:
        if not game_id:
            raise InvalidRequestError('game_id is required', user_id=player)
        manager.apply_move(game_id, player, data.get('count'))
    except FakeSOError as exc:
        current_app.logger.info(f"[move-rejected] game={game_id} player={player} kind={exc.kind}")
        get_broadcaster().publish_game_error(game_id, player, exc, origin=sid)


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(namespace: str = '/ws') -> None:
    """Register Socket.IO event handlers on the given namespace."""
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('identify', handle_identify, namespace=namespace)
    socketio.on_event('join_chat', handle_join_chat, namespace=namespace)
    socketio.on_event('leave_chat', handle_leave_chat, namespace=namespace)
    socketio.on_event('join_game', handle_join_game, namespace=namespace)
    socketio.on_event('leave_game', handle_leave_game, namespace=namespace)
    socketio.on_event('join_lobby', handle_join_lobby, namespace=namespace)
    socketio.on_event('leave_lobby', handle_leave_lobby, namespace=namespace)
    socketio.on_event('make_move', handle_make_move, namespace=namespace)
    socketio.on_event('ping', handle_ping, namespace=namespace)
