from clever.services.games.state import DiceColor, DiceState, Die
from clever.store import room_store


VALUES = {'yellow': 5, 'blue': 2, 'green': 4, 'orange': 1, 'purple': 6, 'white': 3}


def create(client, name='Alice'):
    res = client.post('/api/games/create', json={'name': name, 'session_id': f'sess-{name}'})
    assert res.status_code == 201
    return res.get_json()


def started(client):
    code = create(client)['game_code']
    res = client.post('/api/games/join', json={'game_code': code, 'name': 'Bob', 'session_id': 'sess-Bob'})
    assert res.status_code == 201
    res = client.post(f'/api/games/{code}/start', json={'player_id': 'player1'})
    assert res.status_code == 200
    return code


def fix_dice(code):
    ds = DiceState(dice=tuple(Die(c.value, c, VALUES[c.value]) for c in DiceColor))
    room_store.replace_state(code, {'dice_state': ds.to_dict()})


def test_create_game(client):
    data = create(client)
    assert len(data['game_code']) == 6
    assert data['player_id'] == 'player1'
    assert data['state']['phase'] == 'lobby'
    assert data['state']['turn_info']['phase_description'] == 'Waiting for players...'


def test_create_requires_name(client):
    res = client.post('/api/games/create', json={})
    assert res.status_code == 400
    assert 'error' in res.get_json()


def test_join_and_state(client):
    code = create(client)['game_code']
    res = client.post('/api/games/join', json={'game_code': code.lower(), 'name': 'Bob'})
    assert res.status_code == 201
    joined = res.get_json()
    assert joined['player_id'] == 'player2'
    assert joined['session_id']

    res = client.get(f'/api/games/{code}/state?player_id=player2')
    assert res.status_code == 200
    state = res.get_json()
    assert state['room_code'] == code
    assert state['players']['player2']['name'] == 'Bob'
    assert state['winner'] is None
    assert state['turn_info']['is_my_turn'] is False


def test_join_errors(client):
    res = client.post('/api/games/join', json={'game_code': 'ZZZZZZ', 'name': 'Bob'})
    assert res.status_code == 404
    code = started(client)
    res = client.post('/api/games/join', json={'game_code': code, 'name': 'Cara'})
    assert res.status_code == 403
    res = client.post('/api/games/join', json={'name': 'Cara'})
    assert res.status_code == 400


def test_only_host_starts(client):
    code = create(client)['game_code']
    client.post('/api/games/join', json={'game_code': code, 'name': 'Bob'})
    res = client.post(f'/api/games/{code}/start', json={'player_id': 'player2'})
    assert res.status_code == 403
    res = client.post(f'/api/games/{code}/start', json={'player_id': 'player1'})
    assert res.status_code == 200
    assert res.get_json()['phase'] == 'selecting'


def test_turn_flow_over_http(client):
    code = started(client)
    fix_dice(code)

    res = client.post(f'/api/games/{code}/select', json={'player_id': 'player1', 'die_id': 'green'})
    assert res.status_code == 200
    body = res.get_json()
    assert body['phase'] == 'marking'
    assert body['turn_info']['can_select'] is False

    res = client.post(f'/api/games/{code}/mark', json={
        'player_id': 'player1', 'die_id': 'green', 'section': 'green', 'position': 0,
    })
    assert res.status_code == 200
    assert res.get_json()['scorecards']['player1']['green']['cells'][0] is True

    res = client.post(f'/api/games/{code}/end-turn', json={'player_id': 'player1'})
    assert res.get_json()['phase'] == 'passive_turn'

    res = client.post(f'/api/games/{code}/tray', json={'player_id': 'player2', 'die_id': 'white'})
    assert res.status_code == 200
    assert res.get_json()['die']['id'] == 'white'

    res = client.get(f'/api/games/{code}/valid-positions?player_id=player2&die_id=white')
    positions = res.get_json()['positions']
    assert {'row': 0, 'col': 0} in positions['yellow']
    assert positions['green'] == [0]

    res = client.post(f'/api/games/{code}/mark', json={
        'player_id': 'player2', 'die_id': 'white', 'section': 'yellow', 'position': {'row': 0, 'col': 0},
    })
    assert res.status_code == 200
    res = client.post(f'/api/games/{code}/end-turn', json={'player_id': 'player2'})
    data = res.get_json()
    assert data['active_player_id'] == 'player2'
    assert data['phase'] == 'selecting'


def test_denied_moves_are_400(client):
    code = started(client)
    res = client.post(f'/api/games/{code}/roll', json={'player_id': 'player2'})
    assert res.status_code == 400
    assert res.get_json()['error']

    res = client.post(f'/api/games/{code}/mark', json={
        'player_id': 'player1', 'die_id': 'green', 'section': 'pink', 'position': 0,
    })
    assert res.status_code == 400
    res = client.post(f'/api/games/{code}/mark', json={
        'player_id': 'player1', 'die_id': 'yellow', 'section': 'yellow', 'position': 3,
    })
    assert res.get_json()['error'] == 'Invalid position'
    res = client.post(f'/api/games/{code}/reroll', json={'player_id': 'player1'})
    assert res.status_code == 400
    res = client.post(f'/api/games/{code}/plus-one', json={'player_id': 'player1', 'die_id': 'white'})
    assert res.status_code == 400


def test_unknown_room_is_404(client):
    res = client.get('/api/games/NOPE22/state')
    assert res.status_code == 404
    res = client.post('/api/games/NOPE22/roll', json={'player_id': 'player1'})
    assert res.status_code == 404


def test_leave_closes_lobby(client):
    code = create(client)['game_code']
    res = client.post(f'/api/games/{code}/leave', json={'player_id': 'player1'})
    assert res.status_code == 200
    assert res.get_json()['message'] == 'Game closed'
    assert client.get(f'/api/games/{code}/state').status_code == 404
