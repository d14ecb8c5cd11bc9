from conftest import received


def test_socket_connect_and_join(sio_client):
    assert sio_client.is_connected('/ws')

    sio_client.emit('join_chat', '42', namespace='/ws')
    assert received(sio_client, 'joined') == [{'room': 'chat:42'}]

    sio_client.emit('join_game', {'game_id': 'ab12'}, namespace='/ws')
    assert received(sio_client, 'joined') == [{'room': 'game:AB12'}]

    sio_client.emit('leave_chat', {'chat_id': '42'}, namespace='/ws')
    assert received(sio_client, 'left') == [{'room': 'chat:42'}]


def test_join_without_id_reports_error(sio_client):
    sio_client.emit('join_chat', {}, namespace='/ws')
    errors = received(sio_client, 'error')
    assert errors and errors[0]['error'] == 'invalid_request'


def test_connect_binds_user_and_disconnect_tears_down(connect, registry):
    alice = connect('alice')
    alice.emit('join_chat', '1', namespace='/ws')
    alice.emit('join_lobby', namespace='/ws')
    assert len(registry.subscribers_of('chat:1')) == 1
    assert len(registry.connections_of('alice')) == 1

    alice.disconnect(namespace='/ws')

    assert registry.subscribers_of('chat:1') == frozenset()
    assert registry.subscribers_of('games:lobby') == frozenset()
    assert registry.connections_of('alice') == frozenset()


def test_new_message_fan_out_respects_rooms(client, connect):
    chat = client.post('/api/chat/createChat', json={'participants': ['alice', 'bob']}).get_json()
    other = client.post('/api/chat/createChat', json={'participants': ['carol']}).get_json()

    in_room = connect('bob')
    elsewhere = connect('carol')
    in_room.emit('join_chat', chat['id'], namespace='/ws')
    elsewhere.emit('join_chat', other['id'], namespace='/ws')
    in_room.get_received('/ws')
    elsewhere.get_received('/ws')

    client.post(f"/api/chat/{chat['id']}/addMessage", json={'msg': 'hi bob', 'msg_from': 'alice'})

    updates = received(in_room, 'chat_update')
    assert len(updates) == 1
    assert updates[0]['type'] == 'new_message'
    assert updates[0]['chat']['id'] == chat['id']
    assert updates[0]['chat']['messages'][-1]['msg'] == 'hi bob'
    assert received(elsewhere, 'chat_update') == []


def test_created_chat_reaches_every_connection(client, connect):
    a = connect('alice')
    b = connect()
    chat = client.post('/api/chat/createChat', json={'participants': ['alice', 'bob']}).get_json()
    for conn in (a, b):
        assert received(conn, 'chat_update') == [{'type': 'created', 'chat': chat}]


def test_game_play_over_sockets(client, connect):
    game_id = client.post('/api/games/create', json={'pile_size': 3}).get_json()['game_id']
    a = connect('A')
    b = connect('B')
    lobby = connect()
    for conn in (a, b):
        conn.emit('join_game', game_id, namespace='/ws')
    lobby.emit('join_lobby', namespace='/ws')
    for conn in (a, b, lobby):
        conn.get_received('/ws')

    client.post('/api/games/join', json={'game_id': game_id, 'player_id': 'A'})
    client.post('/api/games/join', json={'game_id': game_id, 'player_id': 'B'})
    statuses = [u['game_state']['state']['status'] for u in received(a, 'game_update')]
    assert statuses == ['WAITING_TO_START', 'IN_PROGRESS']
    b.get_received('/ws')
    lobby.get_received('/ws')

    a.emit('make_move', {'game_id': game_id, 'player_id': 'A', 'count': 2}, namespace='/ws')
    b_updates = received(b, 'game_update')
    assert b_updates[-1]['game_state']['state']['remaining_objects'] == 1
    assert received(lobby, 'game_update')[-1]['game_id'] == game_id

    b.emit('make_move', {'game_id': game_id, 'count': 1}, namespace='/ws')
    final = received(a, 'game_update')[-1]['game_state']
    assert final['state']['status'] == 'OVER'
    assert final['state']['winners'] == ['A']


def test_invalid_move_error_is_not_broadcast(client, connect):
    game_id = client.post('/api/games/create', json={'pile_size': 10}).get_json()['game_id']
    client.post('/api/games/join', json={'game_id': game_id, 'player_id': 'A'})
    client.post('/api/games/join', json={'game_id': game_id, 'player_id': 'B'})
    a = connect('A')
    b = connect('B')
    for conn in (a, b):
        conn.emit('join_game', game_id, namespace='/ws')
        conn.get_received('/ws')

    # B moves out of turn
    b.emit('make_move', {'game_id': game_id, 'player_id': 'B', 'count': 1}, namespace='/ws')

    b_events = b.get_received('/ws')
    errors = [p['args'][0] for p in b_events if p['name'] == 'game_error']
    assert errors == [{'game_id': game_id, 'player': 'B', 'error': 'It is not your turn', 'kind': 'not_your_turn'}]
    assert not any(p['name'] == 'game_update' for p in b_events)
    assert a.get_received('/ws') == []

    state = client.get(f'/api/games/{game_id}').get_json()['state']
    assert state['remaining_objects'] == 10
    assert state['moves'] == []


def test_move_without_player_reports_to_sender(client, connect):
    game_id = client.post('/api/games/create', json={}).get_json()['game_id']
    anon = connect()
    anon.emit('make_move', {'game_id': game_id, 'count': 1}, namespace='/ws')
    errors = received(anon, 'game_error')
    assert len(errors) == 1
    assert errors[0]['kind'] == 'invalid_request'


def test_ping(sio_client):
    sio_client.emit('ping', {'n': 1}, namespace='/ws')
    assert received(sio_client, 'pong') == [{'n': 1}]
