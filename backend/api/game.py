"""Game API endpoints."""
from flask import Blueprint, current_app, request, jsonify, g
from backend.auth import login_required
from backend.catalog import get_catalog
from backend.errors import GameActionError
from backend.models import ActionLog, GamePlayer
from backend.player_store import find_player, load_state, run_action

game_bp = Blueprint('game', __name__)

@game_bp.errorhandler(GameActionError)
def handle_game_action_error(error):
    """Rejected actions leave the city untouched and answer 400."""
    return jsonify(error.to_dict()), 400

def _int_field(data, name):
    value = data.get(name)
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None

def _action_response(action_type, action_data=None):
    engine, result = run_action(g.current_user, action_type, action_data)
    current_app.logger.debug(f"User {g.current_user.id} performed {action_type}: {action_data}")
    return jsonify({**result, 'player': engine.get_state()})

@game_bp.route('/state', methods=['GET'])
@login_required
def get_game_state():
    """Get the current city, creating it on first access and paying out offline progress."""
    engine, offline_collected = load_state(g.current_user)
    return jsonify({
        'player': engine.get_state(offline_collected=offline_collected),
        'config': get_catalog().to_dict()
    })

@game_bp.route('/catalog', methods=['GET'])
def get_game_catalog():
    """Building definitions and grid layout for clients."""
    return jsonify(get_catalog().to_dict())

@game_bp.route('/build', methods=['POST'])
@login_required
def build():
    """Place a building on an unlocked tile."""
    data = request.get_json(silent=True) or {}
    if not data.get('building_type'):
        return jsonify({'error': 'Missing building_type'}), 400
    x, y = _int_field(data, 'x'), _int_field(data, 'y')
    if x is None or y is None:
        return jsonify({'error': 'Missing coordinates'}), 400
    return _action_response('build', {'building_type': data['building_type'], 'x': x, 'y': y})

@game_bp.route('/collect/<int:building_index>', methods=['POST'])
@login_required
def collect(building_index):
    """Collect finished production from one building."""
    return _action_response('collect', {'building_index': building_index})

@game_bp.route('/collect-all', methods=['POST'])
@login_required
def collect_all():
    """Collect from every ready building."""
    return _action_response('collect_all')

@game_bp.route('/upgrade/<int:building_index>', methods=['POST'])
@login_required
def upgrade(building_index):
    return _action_response('upgrade', {'building_index': building_index})

@game_bp.route('/demolish/<int:building_index>', methods=['POST'])
@login_required
def demolish(building_index):
    """Demolish a building; later building indices shift down by one."""
    return _action_response('demolish', {'building_index': building_index})

@game_bp.route('/move/<int:building_index>', methods=['POST'])
@login_required
def move(building_index):
    data = request.get_json(silent=True) or {}
    x, y = _int_field(data, 'x'), _int_field(data, 'y')
    if x is None or y is None:
        return jsonify({'error': 'Missing coordinates'}), 400
    return _action_response('move', {'building_index': building_index, 'x': x, 'y': y})

@game_bp.route('/unlock-zone', methods=['POST'])
@login_required
def unlock_zone():
    """Unlock the zone bordering the city in the given direction."""
    data = request.get_json(silent=True) or {}
    direction = data.get('direction')
    # Older clients send the whole zone object
    if not direction and isinstance(data.get('zone'), dict):
        direction = data['zone'].get('direction')
    if not direction:
        return jsonify({'error': 'Missing direction'}), 400
    return _action_response('unlock_zone', {'direction': direction})

@game_bp.route('/quest/claim/<quest_id>', methods=['POST'])
@login_required
def claim_quest(quest_id):
    """Claim the reward of a completed quest."""
    return _action_response('claim_quest', {'quest_id': quest_id})

@game_bp.route('/reset', methods=['POST'])
@login_required
def reset():
    """Throw the city away and start over."""
    current_app.logger.info(f"User {g.current_user.id} reset their city")
    return _action_response('reset')

@game_bp.route('/rename', methods=['POST'])
@login_required
def rename():
    data = request.get_json(silent=True) or {}
    return _action_response('rename', {'name': data.get('name')})

@game_bp.route('/visit/<int:user_id>', methods=['GET'])
@login_required
def visit(user_id):
    """Read-only view of another player's city."""
    engine = find_player(user_id)
    if engine is None:
        return jsonify({'error': 'City not found'}), 404
    return jsonify({'city': {'owner_id': user_id, **engine.public_view()}})

@game_bp.route('/history', methods=['GET'])
@login_required
def history():
    """Most recent actions applied to the current user's city."""
    limit = max(0, min(request.args.get('limit', 50, type=int), 200))
    offset = max(0, request.args.get('offset', 0, type=int))

    player = GamePlayer.query.filter_by(user_id=g.current_user.id).first()
    if player is None:
        return jsonify({'player': None, 'actions': []})

    actions = ActionLog.query.filter_by(player_id=player.id).order_by(
        ActionLog.id.desc()).offset(offset).limit(limit).all()
    return jsonify({
        'player': player.to_dict(),
        'actions': [action.to_dict() for action in actions]
    })
