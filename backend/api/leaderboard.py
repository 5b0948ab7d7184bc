"""Leaderboard API endpoints."""
from flask import Blueprint, request, jsonify
from backend.auth import login_required
from backend.catalog import get_catalog
from backend.economy import total_population
from backend.game_objects import Building
from backend.models import GamePlayer

leaderboard_bp = Blueprint('leaderboard', __name__)

MAX_LIMIT = 50

@leaderboard_bp.route('/', methods=['GET'])
@login_required
def get_leaderboard():
    """Top cities by level, then experience."""
    limit = max(0, min(request.args.get('limit', MAX_LIMIT, type=int), MAX_LIMIT))
    offset = max(0, request.args.get('offset', 0, type=int))

    players = GamePlayer.query.order_by(
        GamePlayer.level.desc(), GamePlayer.experience.desc()
    ).offset(offset).limit(limit).all()

    catalog = get_catalog()
    leaderboard = []
    for player in players:
        buildings = [Building.from_dict(b) for b in (player.state or {}).get('buildings', [])]
        leaderboard.append({
            'user_id': player.user_id,
            'username': player.user.username if player.user else 'Unknown',
            'city_name': player.city_name,
            'level': player.level,
            'building_count': len(buildings),
            'population': total_population(catalog, buildings)
        })

    return jsonify({
        'leaderboard': leaderboard,
        'total': GamePlayer.query.count()
    })
