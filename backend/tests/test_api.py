def test_health(client):
    res = client.get('/api/health')
    assert res.status_code == 200
    assert res.get_json()['ok'] is True


def test_play_allocates_public_lobby(client):
    res = client.post('/api/play', json={})
    assert res.status_code == 200
    data = res.get_json()
    assert data['roomId'].startswith('PUBLIC-')
    assert data['state'] == 'lobby'

    again = client.post('/api/play', json={}).get_json()
    assert again['roomId'] == data['roomId']

    rooms = client.get('/api/rooms').get_json()['rooms']
    assert [r['roomId'] for r in rooms] == [data['roomId']]


def test_play_resolves_invite_codes(flask_app, client):
    service = flask_app.extensions['inkguess']
    room = service.registry.create_private_room(owner_id=None)

    res = client.post('/api/play', json={'code': room.invite_code})
    assert res.get_json()['roomId'] == room.id

    assert client.post('/api/play', json={'code': 'bad!'}).status_code == 400
    assert client.post('/api/play', json={'code': 'ABCDEFGH'}).status_code == 404


def test_room_lookup(flask_app, client):
    service = flask_app.extensions['inkguess']
    room = service.registry.create_private_room(owner_id=None)
    assert client.get(f'/api/rooms/{room.invite_code}').get_json()['roomId'] == room.id
    assert client.get(f'/api/rooms/{room.id}').get_json()['kind'] == 'private'
    assert client.get('/api/rooms/nope').status_code == 404


def test_words(client):
    data = client.get('/api/words?lang=1&count=4').get_json()
    assert data['language'] == 1
    assert len(data['words']) == 4
    assert client.get('/api/words?lang=42').status_code == 404


def test_admin_requires_token(client):
    assert client.get('/api/admin/rooms').status_code == 401
    assert client.get('/api/admin/rooms', headers={'X-Admin-Token': 'wrong'}).status_code == 401
    res = client.get('/api/admin/rooms', headers={'X-Admin-Token': 'admin-secret'})
    assert res.status_code == 200
    assert res.get_json() == {'rooms': []}


def test_admin_sets_prize_pool(flask_app, client):
    service = flask_app.extensions['inkguess']
    room = service.registry.create_private_room(owner_id=None)
    headers = {'X-Admin-Token': 'admin-secret'}

    res = client.post(f'/api/admin/rooms/{room.id}/prize-pool', json={'amount': 2.5}, headers=headers)
    assert res.status_code == 200
    assert res.get_json()['room']['prizePool'] == 2.5

    res = client.post(f'/api/admin/rooms/{room.id}/prize-pool', json={'amount': -1}, headers=headers)
    assert res.status_code == 400
    res = client.post('/api/admin/rooms/missing/prize-pool', json={'amount': 1}, headers=headers)
    assert res.status_code == 404
