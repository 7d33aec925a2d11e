from flask import Flask
from tests.test_utils_seed import ensure_branch, ensure_user


def _login(client, email, password='pw'):
    return client.post('/api/auth/login', json={'email': email, 'password': password})


def test_login_me_refresh_logout(app_context: Flask):
    client = app_context.test_client()
    branch = ensure_branch('Auth Branch')
    ensure_user('tech_flow@example.com', password='secret', role='technician', branch_id=branch.id)
    resp = _login(client, 'Tech_Flow@Example.com', 'secret')
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['user']['role'] == 'technician'
    access, refresh = body['accessToken'], body['refreshToken']
    headers = {'Authorization': f'Bearer {access}'}

    me = client.get('/api/auth/me', headers=headers).get_json()['user']
    assert me['email'] == 'tech_flow@example.com'
    assert me['branch_ids'] == [branch.id]
    assert 'ORD.STATUS' in me['perms']
    assert 'ORD.CREATE' not in me['perms']

    refreshed = client.post('/api/auth/refresh', headers={'Authorization': f'Bearer {refresh}'})
    assert refreshed.status_code == 200
    assert refreshed.get_json()['accessToken']
    # an access token cannot be used to refresh
    assert client.post('/api/auth/refresh', headers=headers).status_code == 401

    assert client.post('/api/auth/logout', headers=headers).status_code == 200
    assert client.get('/api/auth/me', headers=headers).status_code == 401


def test_login_failures(app_context: Flask):
    client = app_context.test_client()
    ensure_user('login_fail@example.com', password='right')
    assert _login(client, 'login_fail@example.com', 'wrong').status_code == 401
    assert _login(client, 'nobody@example.com', 'right').status_code == 401
    resp = client.post('/api/auth/login', json={'email': 'login_fail@example.com'})
    assert resp.status_code == 400


def test_admin_manages_users(app_context: Flask):
    client = app_context.test_client()
    branch = ensure_branch('Users Branch')
    ensure_user('users_admin@example.com', password='pw')
    token = _login(client, 'users_admin@example.com').get_json()['accessToken']
    headers = {'Authorization': f'Bearer {token}'}

    payload = {'name': 'New Staff', 'email': 'new_staff@example.com', 'password': 'pw2', 'role': 'branch_staff', 'branchId': branch.id}
    resp = client.post('/api/users', json=payload, headers=headers)
    assert resp.status_code == 201
    assert resp.get_json()['user']['branchId'] == branch.id
    assert client.post('/api/users', json=payload, headers=headers).status_code == 409
    no_branch = {**payload, 'email': 'no_branch@example.com', 'branchId': None}
    assert client.post('/api/users', json=no_branch, headers=headers).status_code == 400
    bad_role = {**payload, 'email': 'bad_role@example.com', 'role': 'owner'}
    assert client.post('/api/users', json=bad_role, headers=headers).status_code == 400

    emails = [u['email'] for u in client.get('/api/users', headers=headers).get_json()['users']]
    assert 'new_staff@example.com' in emails

    staff_token = _login(client, 'new_staff@example.com', 'pw2').get_json()['accessToken']
    assert client.get('/api/users', headers={'Authorization': f'Bearer {staff_token}'}).status_code == 403
