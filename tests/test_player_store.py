import threading

import pytest
from sqlalchemy import text
from sqlalchemy.orm.exc import StaleDataError

from backend import player_store
from backend.errors import InsufficientCoins
from backend.game_engine import GameEngine
from backend.models import db, ActionLog, GamePlayer, User

from conftest import NOW


@pytest.fixture
def user(app):
    user = User(username='builder')
    user.set_password('secret123')
    db.session.add(user)
    db.session.commit()
    return user


def _bump_version_on(monkeypatch, attempts):
    """Make another writer save the city during the given action attempts."""
    real = GameEngine.perform_action
    calls = []

    def perform_action(self, action_type, action_data=None, now=None):
        calls.append(action_type)
        if len(calls) in attempts:
            db.session.execute(text('UPDATE game_players SET version = version + 1'))
        return real(self, action_type, action_data, now=now)

    monkeypatch.setattr(GameEngine, 'perform_action', perform_action)
    return calls


def test_first_load_creates_the_city(user):
    engine, offline = player_store.load_state(user, now=NOW)
    assert offline == {}
    player = GamePlayer.query.filter_by(user_id=user.id).one()
    assert player.state['city_name'] == engine.city_name
    assert player.version >= 1


def test_stale_write_is_replayed_on_fresh_state(user, monkeypatch):
    player_store.load_state(user, now=NOW)
    calls = _bump_version_on(monkeypatch, attempts={1})

    engine, result = player_store.run_action(
        user, 'build', {'building_type': 'farm', 'x': 10, 'y': 10}, now=NOW)

    assert calls == ['build', 'build']
    assert result['index'] == 0
    player = GamePlayer.query.filter_by(user_id=user.id).one()
    assert len(player.state['buildings']) == 1
    assert player.state['resources']['coins'] == 400
    assert ActionLog.query.count() == 1


def test_stale_writes_give_up_after_the_retry_budget(user, monkeypatch):
    player_store.load_state(user, now=NOW)
    calls = _bump_version_on(monkeypatch, attempts={1, 2, 3})

    with pytest.raises(StaleDataError):
        player_store.run_action(user, 'build', {'building_type': 'farm', 'x': 10, 'y': 10}, now=NOW)

    assert len(calls) == 3
    assert ActionLog.query.count() == 0
    player = GamePlayer.query.filter_by(user_id=user.id).one()
    assert player.state['buildings'] == []


def test_losing_the_first_insert_race_reloads_the_winner(user, monkeypatch):
    real = player_store.get_or_create_player
    calls = []

    def get_or_create_player(u, now=None):
        calls.append(u.id)
        if len(calls) == 1:
            # another process creates the city between our lookup and insert
            winner = GamePlayer(user_id=u.id)
            winner.store(GameEngine(city_name='Winner', now=NOW))
            db.session.add(winner)
            db.session.commit()
            db.session.add(GamePlayer(user_id=u.id, state={}))
            db.session.flush()
        return real(u, now=now)

    monkeypatch.setattr(player_store, 'get_or_create_player', get_or_create_player)

    engine, _ = player_store.run_action(
        user, 'build', {'building_type': 'farm', 'x': 10, 'y': 10}, now=NOW)

    assert len(calls) == 2
    assert engine.city_name == 'Winner'
    assert GamePlayer.query.filter_by(user_id=user.id).count() == 1


def test_concurrent_spends_of_the_same_coins_are_serialized(app, user):
    player_store.load_state(user, now=NOW)
    # loaded here so the threads never touch the database outside the lock
    user_id = user.id
    barrier = threading.Barrier(2)
    outcomes = []

    def unlock_north():
        with app.app_context():
            barrier.wait()
            try:
                player_store.run_action(user, 'unlock_zone', {'direction': 'north'}, now=NOW)
                outcomes.append('ok')
            except InsufficientCoins:
                outcomes.append('insufficient_coins')

    threads = [threading.Thread(target=unlock_north) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert sorted(outcomes) == ['insufficient_coins', 'ok']
    db.session.expire_all()
    player = GamePlayer.query.filter_by(user_id=user_id).one()
    assert player.state['resources']['coins'] == 0
    assert len(player.state['unlocked_zones']) == 1
    assert ActionLog.query.count() == 1


def test_player_locks_are_released_when_unused():
    with player_store.player_lock(4242):
        assert 4242 in player_store._locks
    assert 4242 not in player_store._locks
