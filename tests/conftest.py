import random
from dataclasses import replace
from types import MappingProxyType

import pytest

from backend.catalog import get_catalog
from backend.game_engine import GameEngine

NOW = 1_700_000_000.0


@pytest.fixture
def catalog():
    return get_catalog()


@pytest.fixture
def story_only_catalog(catalog):
    """Catalog without random quest pools, so quest lists are deterministic."""
    return replace(catalog, random_pools=MappingProxyType({}))


@pytest.fixture
def engine(catalog):
    return GameEngine(catalog=catalog, rng=random.Random(7), now=NOW)


@pytest.fixture
def rich_engine(engine):
    """A fresh city with plenty of everything and no level gates in the way."""
    engine.resources.update(coins=10 ** 9, food=10 ** 9, materials=10 ** 9)
    return engine


@pytest.fixture
def app():
    from backend.app import create_app
    from backend.models import db

    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(client):
    resp = client.post('/api/auth/register', json={'username': 'mayor', 'password': 'secret123'})
    assert resp.status_code == 201
    return {'Authorization': f"Bearer {resp.get_json()['token']}"}
