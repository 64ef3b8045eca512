from shipcrew import socketio


def _received(sio, name):
    return [pkt['args'][0] for pkt in sio.get_received('/ws') if pkt['name'] == name]


def test_index(client):
    res = client.get('/')
    assert res.status_code == 200
    assert 'message' in res.get_json()


def test_health_reports_counts(client, flask_app, sio_client):
    res = client.get('/api/health')
    assert res.status_code == 200
    data = res.get_json()
    assert data['status'] == 'ok'
    assert data['rooms'] == 0
    assert data['players'] == 0
    assert 'timestamp' in data

    sio_client.emit('create_room', {'name': 'Alice'}, namespace='/ws')
    room_id = _received(sio_client, 'room_created')[0]['room_id']
    guest = socketio.test_client(flask_app, namespace='/ws')
    guest.emit('join_room', {'room_id': room_id, 'name': 'Bob'}, namespace='/ws')

    data = client.get('/api/health').get_json()
    assert data['rooms'] == 1
    assert data['players'] == 2
    assert data['active_games'] == 0
    guest.disconnect(namespace='/ws')


def test_room_state(client, sio_client):
    sio_client.emit('create_room', {'name': 'Alice'}, namespace='/ws')
    room_id = _received(sio_client, 'room_created')[0]['room_id']

    res = client.get(f'/api/rooms/{room_id.lower()}')
    assert res.status_code == 200
    state = res.get_json()
    assert state['room_id'] == room_id
    assert state['status'] == 'lobby'
    assert state['time_left'] == 900
    assert state['total_distance'] == 100
    assert [p['username'] for p in state['players']] == ['Alice']


def test_room_state_missing(client):
    res = client.get('/api/rooms/NOPE9')
    assert res.status_code == 404
    assert 'error' in res.get_json()
