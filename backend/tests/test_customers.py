from flask import Flask
from repairshop import get_db
from repairshop.models.audit import AuditLog
from tests.test_utils_seed import create_order, jwt_headers, seed_workspace


def test_save_customer_creates_then_updates(app_context: Flask):
    client = app_context.test_client()
    _, _, _, headers = seed_workspace('CustSave')
    resp = client.post('/api/customers', json={'customer': {'name': 'Dana Walk-in', 'phoneNumber': '+15550001001'}}, headers=headers)
    assert resp.status_code == 201
    body = resp.get_json()
    assert body['isNew'] is True
    cust = body['customer']
    assert cust['contactPreference'] == 'sms'
    assert cust['email'] is None

    resp = client.post('/api/customers', json={'customer': {'id': cust['id'], 'email': 'dana@example.com', 'contactPreference': 'email'}}, headers=headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['isNew'] is False
    assert body['customer']['name'] == 'Dana Walk-in'
    assert body['customer']['email'] == 'dana@example.com'
    logs = get_db().query(AuditLog).filter_by(action='CUSTOMER.SAVE', entity_id=str(cust['id'])).all()
    assert [log.meta['isNew'] for log in logs] == [True, False]


def test_save_customer_validation(app_context: Flask):
    client = app_context.test_client()
    _, _, _, headers = seed_workspace('CustBad')
    assert client.post('/api/customers', json={}, headers=headers).status_code == 400
    resp = client.post('/api/customers', json={'customer': {'name': 'X', 'contactPreference': 'pigeon'}}, headers=headers)
    assert resp.status_code == 400
    resp = client.post('/api/customers', json={'customer': {'id': 987654, 'name': 'Ghost'}}, headers=headers)
    assert resp.status_code == 404
    resp = client.post('/api/customers', json={'customer': {'name': {'first': 'Dana'}}}, headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()['error']['detail'] == 'name must be a string'
    resp = client.post('/api/customers', json={'customer': {'name': 'Listed', 'phoneNumber': ['+1555']}}, headers=headers)
    assert resp.status_code == 400


def test_find_by_phone(app_context: Flask):
    client = app_context.test_client()
    _, _, _, headers = seed_workspace('CustPhone')
    client.post('/api/customers', json={'customer': {'name': 'Phone Owner', 'phoneNumber': '+15550001002'}}, headers=headers)
    found = client.get('/api/customers/phone?phone=%2B15550001002', headers=headers).get_json()['customer']
    assert found['name'] == 'Phone Owner'
    assert client.get('/api/customers/phone?phone=000', headers=headers).get_json() == {'customer': None}
    assert client.get('/api/customers/phone', headers=headers).status_code == 400


def test_search_matches_contact_fields_and_order_codes(app_context: Flask):
    client = app_context.test_client()
    _, branch, customer, headers = seed_workspace('CustSearch')
    by_name = client.get('/api/customers/search?query=custsearch', headers=headers).get_json()['customers']
    assert customer.id in [c['id'] for c in by_name]
    order = create_order(client, headers, customer.id, branch.id)
    by_barcode = client.get(f"/api/customers/search?query={order['barcode']}", headers=headers).get_json()['customers']
    assert [c['id'] for c in by_barcode] == [customer.id]
    assert client.get('/api/customers/search', headers=headers).status_code == 400


def test_customer_orders_and_listing(app_context: Flask):
    client = app_context.test_client()
    user, branch, customer, headers = seed_workspace('CustOrders')
    first = create_order(client, headers, customer.id, branch.id)
    second = create_order(client, headers, customer.id, branch.id)
    orders = client.get(f'/api/customers/{customer.id}/orders', headers=headers).get_json()['orders']
    assert [o['id'] for o in orders] == [first['id'], second['id']]
    assert client.get('/api/customers/987654/orders', headers=headers).status_code == 404
    no_orders = jwt_headers(user.id, ['CUST.READ'])
    assert client.get(f'/api/customers/{customer.id}/orders', headers=no_orders).status_code == 403

    page = client.get('/api/customers?limit=1&sort=-id', headers=headers)
    assert page.status_code == 200
    body = page.get_json()
    assert body['pagination']['limit'] == 1
    assert body['pagination']['returned'] == 1
    assert body['pagination']['total'] >= 1
    assert client.get('/api/customers?limit=abc', headers=headers).status_code == 400
