def test_index(client):
    res = client.get('/')
    assert res.status_code == 200
    assert 'message' in res.get_json()


def test_health(client):
    res = client.get('/health')
    assert res.status_code == 200
    data = res.get_json()
    assert data['status'] == 'ok'
    assert 'timestamp' in data


def test_rooms_list_empty(client):
    res = client.get('/api/rooms')
    assert res.status_code == 200
    assert res.get_json() == {'rooms': []}


def test_rooms_list_and_lookup(client, registry):
    # create a room directly through the registry and read it over HTTP
    room = registry.create_room('h', 'Hana')
    registry.join_room(room.code, 'g', 'Gus')

    res = client.get('/api/rooms')
    assert res.get_json()['rooms'] == [
        {'code': room.code, 'hostName': 'Hana', 'playerCount': 2, 'status': 'waiting'}
    ]

    res = client.get(f'/api/rooms/{room.code.lower()}')
    assert res.status_code == 200
    assert res.get_json()['code'] == room.code


def test_room_lookup_missing(client):
    res = client.get('/api/rooms/zzzz')
    assert res.status_code == 404
    assert res.get_json() == {'error': 'Room ZZZZ not found'}


def test_started_rooms_leave_the_lobby(client, registry):
    import random
    from themind.services.games import rules

    room = registry.create_room('h', 'Hana')
    registry.join_room(room.code, 'g', 'Gus')
    rules.start_game(room, random.Random(5))

    assert client.get('/api/rooms').get_json() == {'rooms': []}
    # still reachable by code while playing
    assert client.get(f'/api/rooms/{room.code}').get_json()['status'] == 'playing'
