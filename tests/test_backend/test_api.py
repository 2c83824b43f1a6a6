"""Tests for backend API endpoints."""
import json


def test_api_requires_authentication(client):
    """Every /api route rejects requests without a valid bearer token."""
    for method, path in [('get', '/api/trees'), ('post', '/api/trees/sync'), ('get', '/api/dashboard')]:
        response = getattr(client, method)(path)
        assert response.status_code == 401
        assert response.get_json() == {'success': False, 'message': 'Authentication required'}

    response = client.get('/api/trees', headers={'Authorization': 'Bearer not-a-jwt'})
    assert response.status_code == 401


def test_register_login_and_me(client):
    response = client.post('/auth/register', json={
        'username': 'ana', 'password': 'correct-horse', 'email': 'ana@example.com', 'fullName': 'Ana Souza'
    })
    assert response.status_code == 201
    assert response.get_json()['data']['isAdmin'] is True

    response = client.post('/auth/login', json={'username': 'ana', 'password': 'wrong-password'})
    assert response.status_code == 401

    response = client.post('/auth/login', json={'username': 'ana', 'password': 'correct-horse'})
    assert response.status_code == 200
    tokens = response.get_json()['data']

    response = client.get('/auth/me', headers={'Authorization': f"Bearer {tokens['token']}"})
    assert response.status_code == 200
    assert response.get_json()['data']['fullname'] == 'Ana Souza'

    response = client.post('/auth/refresh', json={'refreshToken': tokens['refreshToken']})
    assert response.status_code == 200
    assert 'token' in response.get_json()['data']


def test_register_validation_error(client):
    response = client.post('/auth/register', json={'username': 'an'})
    assert response.status_code == 400
    body = response.get_json()
    assert body['success'] is False
    fields = {e['field'] for e in body['data']['errors']}
    assert {'username', 'password', 'email', 'fullName'} <= fields


def test_me_without_token(client):
    assert client.get('/auth/me').status_code == 401


def test_tree_lifecycle_endpoints(client, auth_headers):
    response = client.post('/api/trees', json={'localId': 'abc', 'cidade': 'Curitiba'}, headers=auth_headers)
    assert response.status_code == 201
    created = response.get_json()['data']
    assert created['uniqueId'] == 'abc'
    assert created['id'] == 1
    assert created['userName'] == 'Surveyor'
    assert created['dataCadastro'] == created['dataEdit']

    response = client.post('/api/trees', json={'localId': 'abc'}, headers=auth_headers)
    assert response.status_code == 409
    assert response.get_json()['message'] == 'Tree with this ID already exists'

    response = client.put('/api/trees/abc', json={'cidade': 'Londrina'}, headers=auth_headers)
    assert response.status_code == 200
    updated = response.get_json()['data']
    assert updated['cidade'] == 'Londrina'
    assert updated['dataCadastro'] == created['dataCadastro']
    assert updated['dataEdit'] > created['dataEdit']

    response = client.put('/api/trees/missing', json={'cidade': 'X'}, headers=auth_headers)
    assert response.status_code == 404

    response = client.delete('/api/trees/abc', headers=auth_headers)
    assert response.status_code == 200
    assert client.delete('/api/trees/abc', headers=auth_headers).status_code == 404


def test_list_trees_endpoint(client, auth_headers):
    for i in range(3):
        client.post('/api/trees', json={'localId': f't{i}', 'cidade': 'Maringá'}, headers=auth_headers)
    client.post('/api/trees', json={'localId': 'other', 'cidade': 'Recife'}, headers=auth_headers)

    response = client.get('/api/trees?cidade=maring&limit=2', headers=auth_headers)
    assert response.status_code == 200
    body = json.loads(response.data)
    assert body['total'] == 3
    assert body['page'] == 1
    assert body['limit'] == 2
    assert [t['uniqueId'] for t in body['data']] == ['t2', 't1']

    response = client.get('/api/users/1/trees?search=recife', headers=auth_headers)
    assert [t['uniqueId'] for t in response.get_json()['data']] == ['other']

    response = client.get('/api/trees?page=0', headers=auth_headers)
    assert response.status_code == 400


def test_sync_endpoint(client, auth_headers):
    batch = {'trees': [{'localId': 'a', 'cidade': 'X'}], 'deviceId': 'tablet-1'}
    response = client.post('/api/trees/sync', json=batch, headers=auth_headers)
    assert response.status_code == 200
    body = response.get_json()
    assert body['success'] is True
    assert body['results']['success'] == [{'localId': 'a', 'id': 1, 'uniqueId': 'a'}]
    assert body['results']['errors'] == []
    assert body['results']['conflicts'] == []
    assert 'serverTimestamp' in body


def test_sync_rejects_malformed_batch(client, auth_headers):
    response = client.post('/api/trees/sync', json={'trees': []}, headers=auth_headers)
    assert response.status_code == 400
    fields = [e['field'] for e in response.get_json()['data']['errors']]
    assert fields == ['deviceId']


def test_dashboard_endpoint(client, auth_headers):
    client.post('/api/trees', json={'cidade': 'Recife', 'estado': 'PE'}, headers=auth_headers)

    response = client.get('/api/dashboard', headers=auth_headers)
    assert response.status_code == 200
    data = response.get_json()['data']
    assert data['stats'] == {'totalTrees': 1, 'totalCities': 1, 'totalStates': 1}
    assert len(data['recentRecords']) == 1
    assert len(data['recentActivity']) == 1


def test_users_admin_only(client, auth_headers, admin_headers):
    assert client.get('/api/users', headers=auth_headers).status_code == 403

    response = client.get('/api/users', headers=admin_headers)
    assert response.status_code == 200
    users = response.get_json()['data']
    assert [u['username'] for u in users] == ['chief', 'surveyor']
    surveyor_id = users[1]['id']

    response = client.put(f'/api/users/{surveyor_id}', json={'fullName': 'Field Lead'}, headers=admin_headers)
    assert response.status_code == 200
    assert response.get_json()['data']['fullName'] == 'Field Lead'

    assert client.put('/api/users/999', json={}, headers=admin_headers).status_code == 404
    assert client.delete(f'/api/users/{surveyor_id}', headers=admin_headers).status_code == 200
    assert client.delete(f'/api/users/{surveyor_id}', headers=admin_headers).status_code == 404


def test_sync_batch_failure_is_bad_request(client, app, auth_headers, monkeypatch):
    def explode(item, actor, results):
        raise RuntimeError('disk full')

    monkeypatch.setattr(app.extensions['arbor_trees'].sync, '_sync_item', explode)
    batch = {'trees': [{'localId': 'a'}], 'deviceId': 'tablet-1'}
    response = client.post('/api/trees/sync', json=batch, headers=auth_headers)
    assert response.status_code == 400
    body = response.get_json()
    assert body['success'] is False
    assert body['results'] == {'success': [], 'errors': [], 'conflicts': []}


def test_user_trees_route(client, auth_headers):
    client.post('/api/trees', json={'localId': 'mine'}, headers=auth_headers)

    response = client.get('/api/users/1/trees', headers=auth_headers)
    assert response.status_code == 200
    assert [t['uniqueId'] for t in response.get_json()['data']] == ['mine']
    assert client.get('/api/users/2/trees', headers=auth_headers).get_json()['data'] == []
    assert client.get('/api/trees/user/1', headers=auth_headers).status_code == 404
