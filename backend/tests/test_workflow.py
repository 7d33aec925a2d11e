from datetime import datetime, timedelta, timezone
import pytest

from repairshop.errors import DuplicateOrder, InvalidStatus, InvalidTransition, NotFound, ValidationError
from repairshop.models.order import Order
from repairshop.repositories.memory import InMemoryOrderRepository
from repairshop.services.barcode import validate_barcode
from repairshop.services.order_service import create_order, update_order
from repairshop.services.workflow import OrderWorkflow, WorkflowPolicy, next_status

ITEMS = [{
    'brand': 'Apple',
    'model': 'iPhone 12',
    'parts': [{'name': 'Screen', 'price': 150, 'quantity': 1}, {'name': 'Battery', 'price': 80, 'quantity': 1}],
}]


def _workflow(**policy):
    return OrderWorkflow(InMemoryOrderRepository(), WorkflowPolicy(**policy))


def _create(workflow, **extra):
    data = {'customerId': 1, 'branchId': 1, 'items': ITEMS}
    data.update(extra)
    return create_order(workflow.repository, data, created_by=1)


@pytest.mark.parametrize('current,expected', [
    ('pending', 'in_process'),
    ('in_process', 'shipped'),
    ('shipped', 'completed'),
    ('completed', 'closed'),
    ('closed', None),
    ('mystery', 'pending'),
    (None, 'pending'),
])
def test_next_status_terminal_policy(current, expected):
    assert next_status(current) == expected


def test_next_status_wrap_policy_reopens_closed():
    assert next_status('closed', 'wrap') == 'pending'
    assert next_status('completed', 'wrap') == 'closed'


def test_create_order_computes_totals_and_identifiers():
    wf = _workflow()
    order = _create(wf)
    assert order.status == Order.STATUS_PENDING
    assert order.order_number == 'ORD-0001'
    assert validate_barcode(order.barcode)
    assert order.items[0].total_price_cents == 23000
    assert order.total_amount_cents == 23000
    assert _create(wf).order_number == 'ORD-0002'


def test_create_order_ignores_client_status_and_totals():
    wf = _workflow()
    order = _create(wf, status='closed', totalAmount=1, orderNumber='ORD-9999')
    assert order.status == 'pending'
    assert order.total_amount_cents == 23000
    assert order.order_number == 'ORD-0001'


def test_create_order_renumbers_when_number_is_taken():
    wf = _workflow()
    first = _create(wf)
    repo = wf.repository
    fresh_number = repo.next_order_number
    stale = iter([first.order_number])
    repo.next_order_number = lambda: next(stale, None) or fresh_number()
    second = _create(wf)
    assert second.order_number != first.order_number
    assert [o.id for o in repo.all()] == [first.id, second.id]

    repo.next_order_number = lambda: first.order_number
    with pytest.raises(DuplicateOrder):
        _create(wf)
    assert len(repo.all()) == 2


def test_create_order_requires_customer_and_branch():
    wf = _workflow()
    with pytest.raises(ValidationError):
        create_order(wf.repository, {'branchId': 1}, created_by=1)
    with pytest.raises(ValidationError):
        _create(wf, items=[{'brand': 'Apple', 'parts': []}])


def test_scan_by_barcode_suggests_next_and_confirm_keeps_items():
    wf = _workflow()
    order = _create(wf)
    result = wf.resolve_order_by_scan(f'  {order.barcode} ')
    assert result.order is order
    assert result.suggested_status == 'in_process'
    assert result.others == []
    # scanning never writes
    assert order.status == 'pending'

    updated = wf.apply_status_update(order.id, result.suggested_status)
    assert updated.status == 'in_process'
    assert updated.total_amount_cents == 23000
    assert [p.name for p in updated.items[0].parts] == ['Screen', 'Battery']


def test_scan_by_order_number_is_case_insensitive():
    wf = _workflow()
    _create(wf)
    second = _create(wf)
    assert wf.resolve_order_by_scan('ord-0002').order is second
    assert wf.resolve_order_by_scan('ORD-0002').order is second


def test_scan_errors():
    wf = _workflow()
    _create(wf)
    with pytest.raises(NotFound):
        wf.resolve_order_by_scan('nonexistent')
    with pytest.raises(ValidationError):
        wf.resolve_order_by_scan('   ')
    with pytest.raises(ValidationError):
        wf.resolve_order_by_scan(None)


def test_scan_closed_order_depends_on_policy():
    terminal = _workflow()
    order = _create(terminal)
    terminal.apply_status_update(order.id, 'closed')
    assert terminal.resolve_order_by_scan(order.barcode).suggested_status is None

    wrap = _workflow(closed='wrap')
    order = _create(wrap)
    wrap.apply_status_update(order.id, 'closed')
    assert wrap.resolve_order_by_scan(order.barcode).suggested_status == 'pending'


def test_scan_tie_break_by_created_at_then_id():
    base = datetime(2024, 5, 1, tzinfo=timezone.utc)
    later = Order(order_number='ORD-0010', customer_id=1, branch_id=1, created_by=1, barcode='SHARED', created_at=base + timedelta(minutes=5))
    first = Order(order_number='ORD-0011', customer_id=1, branch_id=1, created_by=1, barcode='SHARED', created_at=base)
    twin = Order(order_number='ORD-0012', customer_id=1, branch_id=1, created_by=1, barcode='SHARED', created_at=base)
    repo = InMemoryOrderRepository([later, first, twin])
    result = OrderWorkflow(repo).resolve_order_by_scan('SHARED')
    assert result.order is first
    assert result.others == [twin, later]


def test_apply_same_status_is_idempotent():
    wf = _workflow()
    order = _create(wf)
    wf.apply_status_update(order.id, 'shipped')
    again = wf.apply_status_update(order.id, 'shipped')
    assert again.status == 'shipped'
    assert again.total_amount_cents == 23000


def test_invalid_status_leaves_order_untouched():
    wf = _workflow()
    order = _create(wf)
    stamp = order.updated_at
    with pytest.raises(InvalidStatus):
        wf.apply_status_update(order.id, 'bogus_status')
    assert order.status == 'pending'
    assert order.updated_at == stamp
    # status is validated before the lookup
    with pytest.raises(InvalidStatus):
        wf.apply_status_update(999, 'bogus_status')
    with pytest.raises(NotFound):
        wf.apply_status_update(999, 'shipped')


def test_free_policy_allows_backwards_moves():
    wf = _workflow()
    order = _create(wf)
    wf.apply_status_update(order.id, 'closed')
    assert wf.apply_status_update(order.id, 'pending').status == 'pending'


def test_forward_policy_refuses_backwards_moves():
    wf = _workflow(transitions='forward')
    order = _create(wf)
    wf.apply_status_update(order.id, 'shipped')
    with pytest.raises(InvalidTransition):
        wf.apply_status_update(order.id, 'in_process')
    assert order.status == 'shipped'
    # skipping ahead is fine
    assert wf.apply_status_update(order.id, 'closed').status == 'closed'
    with pytest.raises(InvalidTransition):
        wf.apply_status_update(order.id, 'pending')


def test_forward_policy_with_wrap_reopens_closed():
    wf = _workflow(transitions='forward', closed='wrap')
    order = _create(wf)
    wf.apply_status_update(order.id, 'closed')
    assert wf.apply_status_update(order.id, 'pending').status == 'pending'


def test_policy_validation_and_config():
    with pytest.raises(ValueError):
        WorkflowPolicy(closed='loop')
    with pytest.raises(ValueError):
        WorkflowPolicy(transitions='sideways')
    policy = WorkflowPolicy.from_config({'ORDER_CLOSED_POLICY': 'WRAP', 'ORDER_TRANSITION_POLICY': None})
    assert policy == WorkflowPolicy(closed='wrap', transitions='free')


def test_update_order_rejects_immutable_fields_and_validates_first():
    wf = _workflow(transitions='forward')
    order = _create(wf, notes='cracked screen')
    with pytest.raises(ValidationError):
        update_order(wf, order, {'orderNumber': 'ORD-7777'})
    wf.apply_status_update(order.id, 'shipped')
    with pytest.raises(InvalidTransition):
        update_order(wf, order, {'notes': 'changed', 'status': 'pending'})
    assert order.notes == 'cracked screen'
    # echoing the stored value back is accepted
    updated = update_order(wf, order, {'orderNumber': order.order_number, 'notes': 'ready', 'items': ITEMS[:1]})
    assert updated.notes == 'ready'
    assert updated.total_amount_cents == 23000
