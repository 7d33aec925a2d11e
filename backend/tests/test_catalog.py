from flask import Flask
from tests.test_utils_seed import ALL_PERMS, ensure_user, jwt_headers


def test_brand_model_part_catalog(app_context: Flask):
    client = app_context.test_client()
    user = ensure_user('catalog_admin@example.com')
    headers = jwt_headers(user.id, ALL_PERMS)

    resp = client.post('/api/catalog/brands', json={'brand': {'name': 'Nokia'}}, headers=headers)
    assert resp.status_code == 201
    brand = resp.get_json()['brand']
    assert client.post('/api/catalog/brands', json={'brand': {'name': 'Nokia'}}, headers=headers).status_code == 409

    model = client.post('/api/catalog/models', json={'model': {'name': '3310', 'brandId': brand['id']}}, headers=headers).get_json()['model']
    hidden = client.post('/api/catalog/models', json={'model': {'name': '8110', 'brandId': brand['id'], 'active': False}}, headers=headers).get_json()['model']
    models = client.get(f"/api/catalog/brands/{brand['id']}/models", headers=headers).get_json()['models']
    assert [m['id'] for m in models] == [model['id']]
    every = client.get(f"/api/catalog/brands/{brand['id']}/models?all=true", headers=headers).get_json()['models']
    assert [m['id'] for m in every] == [model['id'], hidden['id']]

    resp = client.post('/api/catalog/parts', json={'part': {'name': 'Keypad', 'price': '12.50', 'stock': 4, 'modelIds': [model['id'], hidden['id']]}}, headers=headers)
    assert resp.status_code == 201
    part = resp.get_json()['part']
    assert part['price'] == 12.5
    assert part['modelIds'] == sorted([model['id'], hidden['id']])
    parts = client.get(f"/api/catalog/models/{model['id']}/parts", headers=headers).get_json()['parts']
    assert [p['id'] for p in parts] == [part['id']]

    brands = client.get('/api/catalog/brands', headers=headers).get_json()['brands']
    assert 'Nokia' in [b['name'] for b in brands]


def test_catalog_validation(app_context: Flask):
    client = app_context.test_client()
    user = ensure_user('catalog_admin@example.com')
    headers = jwt_headers(user.id, ALL_PERMS)
    assert client.post('/api/catalog/brands', json={'name': 'Flat'}, headers=headers).status_code == 400
    assert client.post('/api/catalog/models', json={'model': {'name': 'X', 'brandId': 987654}}, headers=headers).status_code == 400
    resp = client.post('/api/catalog/parts', json={'part': {'name': 'Orphan', 'modelIds': [987654]}}, headers=headers)
    assert resp.status_code == 400
    assert '987654' in resp.get_json()['error']['detail']
    assert client.post('/api/catalog/parts', json={'part': {'name': 'Cheap', 'price': -1}}, headers=headers).status_code == 400
    assert client.post('/api/catalog/parts', json={'part': {'name': 'Gold Screen', 'price': 1e30}}, headers=headers).status_code == 400
    assert client.post('/api/catalog/brands', json={'brand': {'name': ['Apple']}}, headers=headers).status_code == 400
    assert client.get('/api/catalog/brands/987654/models', headers=headers).status_code == 404
    assert client.get('/api/catalog/models/987654/parts', headers=headers).status_code == 404

    reader = jwt_headers(user.id, ['CAT.READ'])
    assert client.post('/api/catalog/brands', json={'brand': {'name': 'Denied'}}, headers=reader).status_code == 403
