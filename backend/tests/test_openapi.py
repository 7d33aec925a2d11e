from repairshop.openapi import build_openapi_spec


def test_openapi_lists_order_workflow(client):
    resp = client.get('/openapi.json')
    assert resp.status_code == 200
    spec = resp.get_json()
    assert spec['info']['title'] == 'Repair Shop API'
    order = spec['components']['schemas']['Order']
    assert order['x-transitions'] == ['pending', 'in_process', 'shipped', 'completed', 'closed']
    for path in ['/api/orders', '/api/orders/{order_id}', '/api/orders/scan', '/api/orders/{order_id}/status',
                 '/api/orders/barcode/{code}', '/api/customers', '/api/branches', '/api/auth/login']:
        assert path in spec['paths'], path


def test_openapi_operation_ids_are_unique():
    spec = build_openapi_spec()
    ids = [op['operationId'] for item in spec['paths'].values() for op in item.values() if isinstance(op, dict) and 'operationId' in op]
    assert ids
    assert len(ids) == len(set(ids))
    assert build_openapi_spec() == spec


def test_docs_page(client):
    resp = client.get('/docs')
    assert resp.status_code == 200
    assert b'/openapi.json' in resp.data
