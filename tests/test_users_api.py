def test_create_and_fetch_user(client):
    resp = client.post('/api/users', json={
        'name': 'Sam', 'mobile_number': '+15550001111', 'email': 'sam@example.com',
    })

    assert resp.status_code == 201
    user = resp.get_json()['user']
    assert user['name'] == 'Sam'
    assert user['role'] == 'user'
    assert user['email'] == 'sam@example.com'

    resp = client.get(f"/api/users/{user['id']}")
    assert resp.status_code == 200
    assert resp.get_json()['user']['mobile_number'] == '+15550001111'


def test_list_users(client):
    client.post('/api/users', json={'name': 'A', 'mobile_number': '+15550001111'})
    client.post('/api/users', json={'name': 'B', 'mobile_number': '+15550002222'})

    resp = client.get('/api/users')

    body = resp.get_json()
    assert body['message'] == 'Fetched all users!'
    assert {u['name'] for u in body['users']} == {'A', 'B'}


def test_create_user_requires_name_and_number(client):
    resp = client.post('/api/users', json={'name': 'Sam'})

    assert resp.status_code == 400
    assert resp.get_json()['message'] == 'Name and mobile number are required'


def test_duplicate_number_conflicts(client):
    payload = {'name': 'Sam', 'mobile_number': '+15550001111'}
    assert client.post('/api/users', json=payload).status_code == 201

    resp = client.post('/api/users', json=payload)
    assert resp.status_code == 409


def test_missing_user_is_404(client):
    assert client.get('/api/users/42').status_code == 404
