"""Configuration settings for the Flask application."""
import os
from dotenv import load_dotenv

load_dotenv()

class Config:
    """Base configuration."""
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        os.environ.get('SQLALCHEMY_DATABASE_URI') or \
        'sqlite:///city_builder.db'  # Use SQLite for development

    # Directory holding buildings.json, quests.json and economic_rules.json
    GAME_DATA_DIR = os.environ.get('GAME_DATA_DIR')

    # Token lifetime for the bearer tokens handed out by /api/auth
    TOKEN_TTL_SECONDS = int(os.environ.get('TOKEN_TTL_SECONDS', 7 * 24 * 3600))

    # Level for the game modules' loggers (backend.*)
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # Grid configuration
    # FALLBACK values - primary source is game_data/economic_rules.json
    GRID_SIZE = 25  # tiles per side
    INITIAL_UNLOCKED = 8  # side of the central core unlocked for every new city
    ZONE_DEPTH = 4  # tiles added by one zone unlock

    # Starting resources and base capacities
    INITIAL_RESOURCES = {
        'coins': 500,
        'food': 200,
        'materials': 100,
        'energy': 10,
        'population': 0,
        'experience': 0,
        'crystals': 5
    }
    BASE_MAX_STORAGE = 500  # cap for coins/food/materials before warehouses
    BASE_ENERGY = 10  # energy allowance before powerplants

    # Progression limits
    ACTIVE_QUEST_LIMIT = 8
    COLLECT_CYCLE_CAP = 10  # production cycles paid out by one collection
    OFFLINE_CAP_SECONDS = 8 * 3600  # catch-up never looks further back than this
    DEMOLISH_REFUND_RATE = 0.3

    # Serialization of concurrent actions against one player
    PLAYER_ACTION_RETRIES = 3

    DEFAULT_CITY_NAME = 'My City'
    CITY_NAME_MAX_LENGTH = 30

class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')

class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False

class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    SECRET_KEY = 'testing-secret-key-with-enough-length-for-hs256'
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    LOG_LEVEL = 'WARNING'

config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
