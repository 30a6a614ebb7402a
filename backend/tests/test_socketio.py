def test_socket_connect_and_join(sio_client):
    # Ensure we are connected to /ws
    if not sio_client.is_connected('/ws'):
        sio_client.connect(namespace='/ws')
    assert sio_client.is_connected('/ws')

    # Join a room that does not exist yet and expect only the ack
    sio_client.get_received('/ws')
    sio_client.emit('join_game', {'game_code': 'abcd23'}, namespace='/ws')
    received = sio_client.get_received('/ws')
    names = [pkt['name'] for pkt in received]
    assert 'joined' in names
    assert 'state_update' not in names
    joined = next(pkt for pkt in received if pkt['name'] == 'joined')
    assert joined['args'][0]['room'] == 'game:ABCD23'


def test_join_requires_game_code(sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('join_game', {}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert any(pkt['name'] == 'error' for pkt in received)


def test_ping_pong(sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('ping', {'t': 1}, namespace='/ws')
    received = sio_client.get_received('/ws')
    pong = next(pkt for pkt in received if pkt['name'] == 'pong')
    assert pong['args'][0] == {'t': 1}


def test_state_update_pushed_on_change(flask_app, sio_client, client):
    res = client.post('/api/games/create', json={'name': 'Alice', 'session_id': 'sess-a'})
    code = res.get_json()['game_code']

    sio_client.emit('join_game', {'game_code': code, 'player_id': 'player1'}, namespace='/ws')
    received = sio_client.get_received('/ws')
    snapshot = next(pkt for pkt in received if pkt['name'] == 'state_update')
    assert snapshot['args'][0]['state']['phase'] == 'lobby'

    client.post('/api/games/join', json={'game_code': code, 'name': 'Bob', 'session_id': 'sess-b'})
    events = sio_client.get_received('/ws')
    updates = [e for e in events if e['name'] == 'state_update']
    assert updates
    assert updates[-1]['args'][0]['game_code'] == code
    assert updates[-1]['args'][0]['state']['players']['player2']['name'] == 'Bob'


def test_leave_room_stops_updates(flask_app, sio_client, client):
    code = client.post('/api/games/create', json={'name': 'Alice'}).get_json()['game_code']
    sio_client.emit('join_game', {'game_code': code}, namespace='/ws')
    sio_client.emit('leave_game', {'game_code': code}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert any(pkt['name'] == 'left' for pkt in received)

    client.post('/api/games/join', json={'game_code': code, 'name': 'Bob'})
    events = sio_client.get_received('/ws')
    assert not any(e['name'] == 'state_update' for e in events)


def test_session_ended_when_host_closes_lobby(flask_app, sio_client, client):
    code = client.post('/api/games/create', json={'name': 'Alice'}).get_json()['game_code']
    sio_client.emit('join_game', {'game_code': code}, namespace='/ws')
    sio_client.get_received('/ws')

    client.post(f'/api/games/{code}/leave', json={'player_id': 'player1'})
    events = sio_client.get_received('/ws')
    assert any(e['name'] == 'session_ended' for e in events)
