"""Flask application entry point."""
from flask import Flask, send_from_directory
from flask_cors import CORS
from flask_migrate import Migrate
import logging
import os

from backend.config import config
from backend.models import db, bcrypt
from backend.game_data_loader import get_game_data_loader
from backend.catalog import get_catalog

def create_app(config_name=None):
    """Create and configure Flask application."""
    app = Flask(__name__)

    # Load configuration
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')
    app.config.from_object(config[config_name])

    # Game modules and app.logger share the 'backend' logger namespace
    game_logger = logging.getLogger('backend')
    game_logger.setLevel(app.config['LOG_LEVEL'])
    if not game_logger.handlers:
        game_logger.addHandler(logging.StreamHandler())

    # Initialize extensions
    db.init_app(app)
    bcrypt.init_app(app)
    CORS(app)
    Migrate(app, db)

    # Load and check game data once; the catalog is shared by every request
    with app.app_context():
        data_loader = get_game_data_loader(app.config.get('GAME_DATA_DIR'))
        errors = data_loader.validate_data()
        if errors:
            app.logger.warning(f"Game data validation warnings: {errors}")
        catalog = get_catalog()
        app.logger.info(f"Loaded {len(catalog.building_types)} building types, "
                        f"{len(catalog.story_quests)} story quests")

    # Register blueprints
    from backend.api import auth_bp, game_bp, leaderboard_bp
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(game_bp, url_prefix='/api/game')
    app.register_blueprint(leaderboard_bp, url_prefix='/api/leaderboard')

    # Serve game data files
    @app.route('/game_data/<path:filename>')
    def serve_game_data(filename):
        """Serve game data JSON files."""
        return send_from_directory(data_loader.data_dir, filename)

    # Error handlers
    @app.errorhandler(404)
    def not_found(error):
        return {'error': 'Not found'}, 404

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return {'error': 'Internal server error'}, 500

    return app

if __name__ == '__main__':
    app = create_app()
    port = int(os.environ.get('PORT', 5001))
    app.run(debug=True, host='0.0.0.0', port=port)
