"""API blueprints for the city builder."""
from backend.api.auth import auth_bp
from backend.api.game import game_bp
from backend.api.leaderboard import leaderboard_bp

__all__ = ['auth_bp', 'game_bp', 'leaderboard_bp']
