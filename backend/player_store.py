"""Loading, mutating and saving player cities.

Each game request is one read-modify-write transaction. Requests for the same
player are serialized by a per-player lock within the process, and the
``GamePlayer.version`` column catches writers in other processes: a stale
write is rolled back and the action is replayed against fresh state.
"""
import logging
import threading
import weakref
from contextlib import contextmanager

from flask import current_app
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from backend.game_engine import GameEngine
from backend.models import db, ActionLog, GamePlayer

logger = logging.getLogger(__name__)

# Entries vanish once no request holds the lock
_locks = weakref.WeakValueDictionary()
_locks_guard = threading.Lock()

@contextmanager
def player_lock(user_id):
    """Hold the lock for ``user_id``; different players never contend."""
    with _locks_guard:
        lock = _locks.get(user_id)
        if lock is None:
            lock = threading.Lock()
            _locks[user_id] = lock
    with lock:
        yield

def get_or_create_player(user, now=None):
    """Fetch the user's city row, creating a fresh city on first access."""
    player = GamePlayer.query.filter_by(user_id=user.id).first()
    if player is None:
        player = GamePlayer(user_id=user.id)
        player.store(GameEngine(now=now))
        db.session.add(player)
        db.session.flush()
    return player

def _transaction(user, apply, now=None):
    """Run ``apply(player, engine)`` under the player's lock, retrying lost races.

    A stale version (another process saved first) or a duplicate first insert
    (another process created the city first) rolls back and replays the action
    against freshly loaded state.
    """
    retries = current_app.config.get('PLAYER_ACTION_RETRIES', 3)
    with player_lock(user.id):
        for attempt in range(1, retries + 1):
            try:
                player = get_or_create_player(user, now=now)
                engine = GameEngine.load_from_player(player)
                result = apply(player, engine)
                player.store(engine)
                db.session.commit()
                return engine, result
            except (StaleDataError, IntegrityError) as e:
                db.session.rollback()
                if attempt >= retries:
                    raise
                logger.warning("Concurrent update of player %s (%s), retrying (attempt %s)",
                               user.id, type(e).__name__, attempt)
            except Exception:
                db.session.rollback()
                raise

def load_state(user, now=None):
    """Load a city for viewing, paying out offline progress.

    Returns ``(engine, offline_collected)``.
    """
    return _transaction(user, lambda player, engine: engine.process_offline_progress(now=now), now=now)

def run_action(user, action_type, action_data=None, now=None):
    """Apply one game action to the user's city and persist the result.

    ``GameActionError`` propagates after a rollback; nothing is saved.
    Returns ``(engine, result)``.
    """
    action_data = action_data or {}

    def apply(player, engine):
        result = engine.perform_action(action_type, action_data, now=now)
        db.session.add(ActionLog(player_id=player.id, action_type=action_type, action_data=action_data))
        return result

    return _transaction(user, apply, now=now)

def find_player(user_id):
    """Load another user's city read-only, or None."""
    player = GamePlayer.query.filter_by(user_id=user_id).first()
    if player is None:
        return None
    return GameEngine.load_from_player(player)
