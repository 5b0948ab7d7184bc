"""Database models for the game."""
from datetime import datetime
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt

db = SQLAlchemy()
bcrypt = Bcrypt()

class User(db.Model):
    """User account that owns one city."""
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    player = db.relationship('GamePlayer', backref='user', uselist=False, cascade='all, delete-orphan')

    def set_password(self, password):
        """Hash and set password."""
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        """Check password against hash."""
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        """Convert to dictionary."""
        return {
            'id': self.id,
            'username': self.username,
            'created_at': self.created_at.isoformat()
        }

class GamePlayer(db.Model):
    """A player's city, stored as one JSON document.

    ``version`` is bumped on every flush; a concurrent writer holding a stale
    copy fails with ``StaleDataError`` instead of overwriting the other write.
    """
    __tablename__ = 'game_players'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), unique=True, nullable=False, index=True)
    city_name = db.Column(db.String(30), nullable=False, default='My City')
    level = db.Column(db.Integer, nullable=False, default=1, index=True)  # denormalized for the leaderboard
    experience = db.Column(db.Integer, nullable=False, default=0)
    state = db.Column(db.JSON, default=dict)  # Full city document
    version = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    actions = db.relationship('ActionLog', backref='player', lazy=True, cascade='all, delete-orphan',
                              order_by='ActionLog.id')

    __mapper_args__ = {'version_id_col': version}

    def store(self, engine):
        """Copy an engine's city into this row."""
        state = engine.to_dict()
        self.state = state
        self.city_name = state['city_name']
        self.level = state['level']
        self.experience = state['experience']

    def to_dict(self):
        """Convert to dictionary."""
        return {
            'id': self.id,
            'user_id': self.user_id,
            'city_name': self.city_name,
            'level': self.level,
            'experience': self.experience,
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }

class ActionLog(db.Model):
    """Record of every game action applied to a city."""
    __tablename__ = 'action_logs'

    id = db.Column(db.Integer, primary_key=True)
    player_id = db.Column(db.Integer, db.ForeignKey('game_players.id'), nullable=False, index=True)
    action_type = db.Column(db.String(50), nullable=False)  # build, collect, upgrade, claim_quest, ...
    action_data = db.Column(db.JSON, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self):
        """Convert to dictionary."""
        return {
            'id': self.id,
            'player_id': self.player_id,
            'action_type': self.action_type,
            'action_data': self.action_data,
            'created_at': self.created_at.isoformat()
        }
