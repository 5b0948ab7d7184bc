def test_register_and_login(client):
    resp = client.post('/api/auth/register', json={'username': 'alice', 'password': 'hunter22'})
    assert resp.status_code == 201
    assert resp.get_json()['user']['username'] == 'alice'

    resp = client.post('/api/auth/register', json={'username': 'alice', 'password': 'hunter22'})
    assert resp.status_code == 400

    resp = client.post('/api/auth/register', json={'username': 'bob', 'password': '123'})
    assert resp.status_code == 400

    resp = client.post('/api/auth/login', json={'username': 'alice', 'password': 'wrong-pass'})
    assert resp.status_code == 401

    resp = client.post('/api/auth/login', json={'username': 'alice', 'password': 'hunter22'})
    assert resp.status_code == 200
    token = resp.get_json()['token']

    resp = client.get('/api/auth/me', headers={'Authorization': f'Bearer {token}'})
    assert resp.get_json()['user']['username'] == 'alice'


def test_game_routes_require_a_token(client):
    assert client.get('/api/game/state').status_code == 401
    resp = client.get('/api/game/state', headers={'Authorization': 'Bearer not-a-token'})
    assert resp.status_code == 401


def test_first_state_request_creates_a_city(client, auth_headers):
    resp = client.get('/api/game/state', headers=auth_headers)
    assert resp.status_code == 200
    body = resp.get_json()
    player = body['player']

    assert player['level'] == 1
    assert player['resources']['coins'] == 500
    assert player['buildings'] == []
    assert len(player['active_quests']) == 8
    assert len(player['next_zones']) == 4
    assert 'farm' in body['config']['building_types']


def test_build_then_claim_first_quest(client, auth_headers):
    resp = client.post('/api/game/build', headers=auth_headers,
                       json={'building_type': 'farm', 'x': 10, 'y': 10})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['success'] is True
    assert body['player']['resources']['coins'] == 400
    assert body['player']['buildings'][0]['type'] == 'farm'

    resp = client.post('/api/game/build', headers=auth_headers,
                       json={'building_type': 'house', 'x': 10, 'y': 10})
    assert resp.status_code == 400
    assert resp.get_json()['code'] == 'tile_occupied'

    resp = client.post('/api/game/quest/claim/s1', headers=auth_headers)
    assert resp.status_code == 200
    player = resp.get_json()['player']
    assert 's1' in player['completed_quests']
    assert player['resources']['materials'] == 100


def test_rejected_action_keeps_city(client, auth_headers):
    client.post('/api/game/build', headers=auth_headers,
                json={'building_type': 'farm', 'x': 10, 'y': 10})

    resp = client.post('/api/game/collect/0', headers=auth_headers)
    assert resp.status_code == 400
    body = resp.get_json()
    assert body['code'] == 'not_ready'
    assert 0 < body['remaining'] <= 300

    resp = client.post('/api/game/collect/7', headers=auth_headers)
    assert resp.status_code == 400
    assert resp.get_json()['code'] == 'building_not_found'

    state = client.get('/api/game/state', headers=auth_headers).get_json()['player']
    assert len(state['buildings']) == 1
    assert state['resources']['coins'] == 400


def test_build_requires_fields(client, auth_headers):
    resp = client.post('/api/game/build', headers=auth_headers, json={'x': 10, 'y': 10})
    assert resp.status_code == 400
    resp = client.post('/api/game/build', headers=auth_headers, json={'building_type': 'farm'})
    assert resp.status_code == 400


def test_unlock_zone_and_rename(client, auth_headers):
    resp = client.post('/api/game/unlock-zone', headers=auth_headers, json={'direction': 'north'})
    assert resp.status_code == 200
    assert resp.get_json()['cost'] == 500

    resp = client.post('/api/game/unlock-zone', headers=auth_headers, json={'direction': 'south'})
    assert resp.status_code == 400
    assert resp.get_json()['code'] == 'insufficient_coins'

    resp = client.post('/api/game/rename', headers=auth_headers, json={'name': 'Harbor Town'})
    assert resp.get_json()['player']['city_name'] == 'Harbor Town'

    resp = client.post('/api/game/rename', headers=auth_headers, json={'name': ''})
    assert resp.status_code == 400


def test_leaderboard_and_visit(client, auth_headers):
    client.post('/api/game/build', headers=auth_headers,
                json={'building_type': 'house', 'x': 9, 'y': 9})
    me = client.get('/api/auth/me', headers=auth_headers).get_json()['user']

    resp = client.get('/api/leaderboard/', headers=auth_headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['total'] == 1
    assert body['leaderboard'][0]['username'] == 'mayor'
    assert body['leaderboard'][0]['building_count'] == 1
    assert body['leaderboard'][0]['population'] == 5

    resp = client.get(f"/api/game/visit/{me['id']}", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.get_json()['city']['building_count'] == 1

    assert client.get('/api/game/visit/999', headers=auth_headers).status_code == 404


def test_catalog_is_public(client):
    resp = client.get('/api/game/catalog')
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['building_types']['farm']['base_cost'] == {'coins': 100, 'materials': 50}


def test_history_lists_applied_actions_newest_first(client, auth_headers):
    assert client.get('/api/game/history', headers=auth_headers).get_json()['actions'] == []

    client.post('/api/game/build', headers=auth_headers,
                json={'building_type': 'farm', 'x': 10, 'y': 10})
    client.post('/api/game/rename', headers=auth_headers, json={'name': 'Millbrook'})
    # rejected actions are rolled back and leave no log entry
    client.post('/api/game/collect/3', headers=auth_headers)

    body = client.get('/api/game/history', headers=auth_headers).get_json()
    assert body['player']['city_name'] == 'Millbrook'
    assert [a['action_type'] for a in body['actions']] == ['rename', 'build']
    assert body['actions'][1]['action_data'] == {'building_type': 'farm', 'x': 10, 'y': 10}


def test_paging_arguments_are_clamped(client, auth_headers):
    client.post('/api/game/build', headers=auth_headers,
                json={'building_type': 'farm', 'x': 10, 'y': 10})

    body = client.get('/api/leaderboard/?limit=-1', headers=auth_headers).get_json()
    assert body['leaderboard'] == []
    assert body['total'] == 1
    body = client.get('/api/leaderboard/?offset=-5', headers=auth_headers).get_json()
    assert len(body['leaderboard']) == 1

    assert client.get('/api/game/history?limit=-1', headers=auth_headers).get_json()['actions'] == []
    body = client.get('/api/game/history?offset=-5', headers=auth_headers).get_json()
    assert [a['action_type'] for a in body['actions']] == ['build']
