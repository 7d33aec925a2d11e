from flask import Flask
from tests.test_utils_seed import ALL_PERMS, ensure_branch, ensure_user, jwt_headers


def test_entries_and_branch_summary(app_context: Flask):
    client = app_context.test_client()
    branch = ensure_branch('Ledger Branch')
    user = ensure_user('ledger@example.com')
    headers = jwt_headers(user.id, ALL_PERMS)

    empty = client.get(f'/api/accounting/summary?branchId={branch.id}', headers=headers).get_json()['summary']
    assert empty['entryCount'] == 0
    assert empty['balance'] == 0

    entries = [
        {'branchId': branch.id, 'description': 'Screen repair', 'amount': 230, 'type': 'income', 'category': 'repair'},
        {'branchId': branch.id, 'description': 'Rent', 'amount': '100.25', 'type': 'expense', 'category': 'rent'},
    ]
    for entry in entries:
        resp = client.post('/api/accounting', json={'entry': entry}, headers=headers)
        assert resp.status_code == 201
        assert resp.get_json()['entry']['createdBy'] == user.id

    summary = client.get(f'/api/accounting/summary?branchId={branch.id}', headers=headers).get_json()['summary']
    assert summary['income'] == 230
    assert summary['expense'] == 100.25
    assert summary['balance'] == 129.75
    assert summary['entryCount'] == 2
    assert summary['lastUpdated'].endswith('Z')

    listed = client.get(f'/api/accounting?branchId={branch.id}', headers=headers).get_json()['entries']
    assert [e['description'] for e in listed] == ['Rent', 'Screen repair']


def test_accounting_validation_and_scope(app_context: Flask):
    client = app_context.test_client()
    branch = ensure_branch('Ledger Scope Branch')
    user = ensure_user('ledger_scope@example.com', role='branch_staff', branch_id=branch.id)
    admin = jwt_headers(user.id, ALL_PERMS)
    assert client.get('/api/accounting/summary', headers=admin).status_code == 400
    bad = {'branchId': branch.id, 'description': 'Odd', 'amount': 1, 'type': 'gift'}
    assert client.post('/api/accounting', json={'entry': bad}, headers=admin).status_code == 400
    missing = {'branchId': 987654, 'description': 'Nowhere', 'amount': 1}
    assert client.post('/api/accounting', json={'entry': missing}, headers=admin).status_code == 400
    for amount in (1e20, 1e30, '1e30'):
        huge = {'branchId': branch.id, 'description': 'Windfall', 'amount': amount}
        assert client.post('/api/accounting', json={'entry': huge}, headers=admin).status_code == 400
    odd = {'branchId': branch.id, 'description': {'text': 'Odd'}, 'amount': 1}
    assert client.post('/api/accounting', json={'entry': odd}, headers=admin).status_code == 400

    scoped = jwt_headers(user.id, ['ACC.READ', 'ACC.CREATE'], [branch.id], role='branch_staff')
    # single-branch staff fall back to their own branch
    assert client.get('/api/accounting/summary', headers=scoped).status_code == 200
    other = ensure_branch('Ledger Other Branch')
    assert client.get(f'/api/accounting?branchId={other.id}', headers=scoped).status_code == 403
