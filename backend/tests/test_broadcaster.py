import pytest

from fakeso.errors import NotYourTurnError, PersistenceError
from fakeso.services.broadcaster import Broadcaster
from fakeso.services.rooms import LOBBY_ROOM, RoomRegistry


class RecordingSocketIO:
    def __init__(self):
        self.sent = []

    def emit(self, event, payload, to=None, namespace=None):
        self.sent.append((event, payload, to, namespace))

    def to(self, sid):
        return [(e, p) for e, p, t, _ in self.sent if t == sid]


@pytest.fixture()
def setup():
    sio = RecordingSocketIO()
    reg = RoomRegistry()
    return sio, reg, Broadcaster(sio, reg, namespace='/ws')


def test_created_goes_to_everyone(setup):
    sio, reg, broadcaster = setup
    broadcaster.publish_chat_update('created', {'id': '1'})
    assert sio.sent == [('chat_update', {'type': 'created', 'chat': {'id': '1'}}, None, '/ws')]


def test_new_message_only_reaches_room_subscribers(setup):
    sio, reg, broadcaster = setup
    reg.subscribe('in-room', 'chat:1')
    reg.subscribe('other-room', 'chat:2')

    broadcaster.publish_chat_update('new_message', {'id': '1', 'messages': []})

    assert sio.to('in-room') == [('chat_update', {'type': 'new_message', 'chat': {'id': '1', 'messages': []}})]
    assert sio.to('other-room') == []


def test_unknown_chat_update_kind_rejected(setup):
    _, _, broadcaster = setup
    with pytest.raises(ValueError):
        broadcaster.publish_chat_update('deleted', {'id': '1'})


def test_game_update_reaches_room_and_lobby_once(setup):
    sio, reg, broadcaster = setup
    reg.subscribe('player', 'game:AB12')
    reg.subscribe('watcher', LOBBY_ROOM)
    reg.subscribe('both', 'game:AB12')
    reg.subscribe('both', LOBBY_ROOM)
    reg.subscribe('elsewhere', 'game:ZZ99')

    state = {'game_id': 'AB12', 'state': {'status': 'IN_PROGRESS'}}
    broadcaster.publish_game_update('AB12', state)

    targets = [t for _, _, t, _ in sio.sent]
    assert sorted(targets) == ['both', 'player', 'watcher']
    assert all(p == {'game_id': 'AB12', 'game_state': state} for _, p, _, _ in sio.sent)


def test_updates_keep_publish_order_per_room(setup):
    sio, reg, broadcaster = setup
    reg.subscribe('s1', 'chat:1')
    for n in range(5):
        broadcaster.publish_chat_update('new_message', {'id': '1', 'n': n})
    assert [p['chat']['n'] for _, p in sio.to('s1')] == [0, 1, 2, 3, 4]


def test_game_error_only_reaches_acting_user(setup):
    sio, reg, broadcaster = setup
    reg.bind_user('alice-tab-1', 'alice')
    reg.bind_user('alice-tab-2', 'alice')
    reg.bind_user('bob-tab', 'bob')
    for sid in ('alice-tab-1', 'alice-tab-2', 'bob-tab'):
        reg.subscribe(sid, 'game:AB12')

    broadcaster.publish_game_error('AB12', 'alice', NotYourTurnError('It is not your turn'))

    assert sorted(t for _, _, t, _ in sio.sent) == ['alice-tab-1', 'alice-tab-2']
    event, payload = sio.to('alice-tab-1')[0]
    assert event == 'game_error'
    assert payload == {'game_id': 'AB12', 'player': 'alice', 'error': 'It is not your turn', 'kind': 'not_your_turn'}


def test_game_error_falls_back_to_origin_connection(setup):
    sio, reg, broadcaster = setup
    broadcaster.publish_game_error('AB12', None, PersistenceError('db exploded'), origin='anon')
    assert len(sio.sent) == 1
    event, payload = sio.to('anon')[0]
    assert payload['error'] == 'Internal storage failure'
