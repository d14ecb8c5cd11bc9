import threading

from fakeso.services.locks import KeyedLock
from fakeso.services.rooms import LOBBY_ROOM, RoomRegistry, chat_room, game_room


def test_subscribe_is_idempotent():
    reg = RoomRegistry()
    reg.subscribe('s1', 'chat:1')
    reg.subscribe('s1', 'chat:1')
    assert reg.subscribers_of('chat:1') == {'s1'}
    assert reg.rooms_of('s1') == {'chat:1'}


def test_unsubscribe_non_member_is_noop():
    reg = RoomRegistry()
    reg.unsubscribe('s1', 'chat:1')
    reg.subscribe('s2', 'chat:1')
    reg.unsubscribe('s1', 'chat:1')
    assert reg.subscribers_of('chat:1') == {'s2'}


def test_subscribers_of_returns_snapshot():
    reg = RoomRegistry()
    reg.subscribe('s1', 'chat:1')
    snapshot = reg.subscribers_of('chat:1')
    reg.subscribe('s2', 'chat:1')
    assert snapshot == {'s1'}
    assert reg.subscribers_of('chat:1') == {'s1', 's2'}


def test_teardown_clears_all_rooms_and_user():
    reg = RoomRegistry()
    reg.bind_user('s1', 'alice')
    reg.subscribe('s1', 'chat:1')
    reg.subscribe('s1', game_room('ab12'))
    reg.subscribe('s2', 'chat:1')

    left = reg.teardown('s1')

    assert left == {'chat:1', 'game:AB12'}
    assert reg.subscribers_of('chat:1') == {'s2'}
    assert reg.subscribers_of('game:AB12') == frozenset()
    assert reg.connections_of('alice') == frozenset()
    assert reg.user_of('s1') is None
    assert reg.teardown('s1') == frozenset()


def test_user_binding_follows_latest_identity():
    reg = RoomRegistry()
    reg.bind_user('s1', 'alice')
    reg.bind_user('s2', 'alice')
    assert reg.connections_of('alice') == {'s1', 's2'}
    reg.bind_user('s1', 'bob')
    assert reg.connections_of('alice') == {'s2'}
    assert reg.connections_of('bob') == {'s1'}


def test_room_names():
    assert chat_room(7) == 'chat:7'
    assert game_room('ab12') == 'game:AB12'
    assert LOBBY_ROOM not in (chat_room('lobby'), game_room('lobby'))


def test_keyed_lock_serializes_same_key():
    locks = KeyedLock()
    inside = []
    overlaps = []

    def worker():
        for _ in range(200):
            with locks.hold('game'):
                inside.append(1)
                if len(inside) > 1:
                    overlaps.append(True)
                inside.pop()

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert overlaps == []
    assert len(locks) == 0


def test_keyed_lock_is_reentrant():
    locks = KeyedLock()
    with locks.hold('a'):
        with locks.hold('a'):
            assert len(locks) == 1
    assert len(locks) == 0
