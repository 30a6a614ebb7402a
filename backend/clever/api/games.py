from flask import Blueprint, jsonify, request, current_app
import uuid
from clever.services.games.errors import GameError
from clever.services.games.orchestrator import payload
from clever.services.games.state import Section, position_from_json


games = Blueprint('games', __name__)


def _orchestrator():
    return current_app.extensions['clever.orchestrator']


@games.errorhandler(GameError)
def handle_game_error(exc):
    current_app.logger.info(f"[error] status={exc.status_code} {exc}")
    return jsonify({'error': str(exc)}), exc.status_code


def _action_response(result, player_id):
    if not result.success:
        return jsonify({'error': result.error}), 400
    if result.state is None:
        return jsonify({'message': 'Game closed'})
    data = payload(result.state, player_id)
    data['bonuses_earned'] = [b.to_dict() for b in result.bonuses_earned]
    if result.die is not None:
        data['die'] = result.die.to_dict()
    return jsonify(data)


def _section(raw):
    try:
        return Section(raw)
    except ValueError:
        return None


@games.route('/create', methods=['POST'])
def create_game():
    data = request.get_json(silent=True) or {}
    name = data.get('name')
    if not name:
        return jsonify({'error': 'Player name is required'}), 400
    session_id = data.get('session_id') or uuid.uuid4().hex
    state, player_id = _orchestrator().create_game(name, session_id)
    return jsonify({
        'message': 'New game created!',
        'game_code': state.room_code,
        'player_id': player_id,
        'session_id': session_id,
        'state': payload(state, player_id),
    }), 201


@games.route('/join', methods=['POST'])
def join_game():
    data = request.get_json(silent=True) or {}
    game_code = data.get('game_code')
    name = data.get('name')
    if not all([game_code, name]):
        return jsonify({'error': 'Game code and player name are required'}), 400
    session_id = data.get('session_id') or uuid.uuid4().hex
    state, player_id = _orchestrator().join_game(game_code, name, session_id)
    return jsonify({
        'game_code': state.room_code,
        'player_id': player_id,
        'session_id': session_id,
        'state': payload(state, player_id),
    }), 201


@games.route('/<string:game_code>/state', methods=['GET'])
def get_game_state(game_code):
    state = _orchestrator().get_state(game_code)
    return jsonify(payload(state, request.args.get('player_id')))


@games.route('/<string:game_code>/start', methods=['POST'])
def start_game(game_code):
    data = request.get_json(silent=True) or {}
    player_id = data.get('player_id')
    result = _orchestrator().start_game(game_code, player_id)
    return _action_response(result, player_id)


@games.route('/<string:game_code>/roll', methods=['POST'])
def roll_dice(game_code):
    data = request.get_json(silent=True) or {}
    player_id = data.get('player_id')
    return _action_response(_orchestrator().roll_dice(game_code, player_id), player_id)


@games.route('/<string:game_code>/select', methods=['POST'])
def select_die(game_code):
    data = request.get_json(silent=True) or {}
    player_id = data.get('player_id')
    die_id = data.get('die_id')
    if not all([player_id, die_id]):
        return jsonify({'error': 'Player ID and die ID are required'}), 400
    return _action_response(_orchestrator().select_die(game_code, player_id, die_id), player_id)


@games.route('/<string:game_code>/tray', methods=['POST'])
def select_from_silver_tray(game_code):
    data = request.get_json(silent=True) or {}
    player_id = data.get('player_id')
    die_id = data.get('die_id')
    if not all([player_id, die_id]):
        return jsonify({'error': 'Player ID and die ID are required'}), 400
    result = _orchestrator().select_from_silver_tray(game_code, player_id, die_id)
    return _action_response(result, player_id)


@games.route('/<string:game_code>/mark', methods=['POST'])
def mark_scorecard(game_code):
    data = request.get_json(silent=True) or {}
    player_id = data.get('player_id')
    die_id = data.get('die_id')
    section = _section(data.get('section'))
    if not all([player_id, die_id]):
        return jsonify({'error': 'Player ID and die ID are required'}), 400
    if section is None:
        return jsonify({'error': 'Unknown section'}), 400
    position = position_from_json(section, data.get('position'))
    if position is None:
        return jsonify({'error': 'Invalid position'}), 400
    result = _orchestrator().mark_scorecard(game_code, player_id, die_id, section, position)
    return _action_response(result, player_id)


@games.route('/<string:game_code>/end-turn', methods=['POST'])
def end_turn(game_code):
    data = request.get_json(silent=True) or {}
    player_id = data.get('player_id')
    return _action_response(_orchestrator().end_turn(game_code, player_id), player_id)


@games.route('/<string:game_code>/reroll', methods=['POST'])
def use_reroll(game_code):
    data = request.get_json(silent=True) or {}
    player_id = data.get('player_id')
    return _action_response(_orchestrator().use_reroll(game_code, player_id), player_id)


@games.route('/<string:game_code>/plus-one', methods=['POST'])
def use_plus_one(game_code):
    data = request.get_json(silent=True) or {}
    player_id = data.get('player_id')
    die_id = data.get('die_id')
    if not all([player_id, die_id]):
        return jsonify({'error': 'Player ID and die ID are required'}), 400
    return _action_response(_orchestrator().use_plus_one(game_code, player_id, die_id), player_id)


@games.route('/<string:game_code>/leave', methods=['POST'])
def leave_game(game_code):
    data = request.get_json(silent=True) or {}
    player_id = data.get('player_id')
    result = _orchestrator().leave_game(game_code, player_id)
    return _action_response(result, player_id)


@games.route('/<string:game_code>/valid-positions', methods=['GET'])
def valid_positions(game_code):
    player_id = request.args.get('player_id')
    die_id = request.args.get('die_id')
    if not all([player_id, die_id]):
        return jsonify({'error': 'Player ID and die ID are required'}), 400
    found = _orchestrator().valid_positions(game_code, player_id, die_id)
    positions = {
        section.value: [p.to_dict() if hasattr(p, 'to_dict') else p for p in options]
        for section, options in found.items()
    }
    return jsonify({'die_id': die_id, 'positions': positions})
