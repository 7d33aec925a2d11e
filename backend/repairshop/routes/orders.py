from __future__ import annotations
from flask import Blueprint, request, current_app
from flask_jwt_extended import get_jwt_identity
from repairshop import get_db
from repairshop.errors import NotFound, ValidationError
from repairshop.models.order import Order
from repairshop.models.customer import Customer
from repairshop.models.branch import Branch
from repairshop.decorators.auth import require_permissions
from repairshop.decorators.audit import audit_log
from repairshop.repositories.sql import SqlOrderRepository
from repairshop.services.barcode import BarcodeGenerator
from repairshop.services.order_service import create_order as create_order_record, update_order as update_order_record, order_payload, search_clauses
from repairshop.services.policy import assert_branch_access, current_branch_ids, filter_query_by_branches
from repairshop.services.workflow import OrderWorkflow, WorkflowPolicy
from repairshop.utils.filters import apply_filters
from repairshop.utils.listing import apply_pagination, handle_conditional, make_cached_list_response, make_cached_item_response, latest_timestamp
from repairshop.utils.sorting import apply_multi_sort
from repairshop.utils.timeutil import isoformat
from repairshop.utils.validation import cents_to_amount, parse_int, require_fields

orders_bp = Blueprint('orders', __name__)

SORTABLE = {
    'orderNumber': Order.order_number,
    'status': Order.status,
    'totalAmount': Order.total_amount_cents,
    'createdAt': Order.created_at,
    'updatedAt': Order.updated_at,
    'id': Order.id,
}


def workflow_for_request() -> OrderWorkflow:
    return OrderWorkflow(SqlOrderRepository(get_db()), WorkflowPolicy.from_config(current_app.config))


@orders_bp.get('')
@require_permissions('ORD.READ')
def list_orders():
    session = get_db()
    branch_ids = current_branch_ids()
    q = filter_query_by_branches(session.query(Order), Order.branch_id, branch_ids)
    filter_specs = {
        'branchId': {'coerce': int, 'op': lambda qu, v: qu.filter(Order.branch_id == v)},
        'customerId': {'coerce': int, 'op': lambda qu, v: qu.filter(Order.customer_id == v)},
        'status': {'op': lambda qu, v: qu.filter(Order.status == v), 'validate': lambda v: v in Order.ALL_STATUSES},
    }
    q = apply_filters(q, filter_specs, request.args)
    q = apply_multi_sort(q, request.args.get('sort'), SORTABLE, Order.created_at, Order.id)
    paged_q, total, limit, offset = apply_pagination(q)
    rows = paged_q.all()
    latest_ts = latest_timestamp(o.updated_at for o in rows)
    resp, etag = make_cached_list_response([order_json(o) for o in rows], total, limit, offset, latest_ts)
    cond = handle_conditional(etag, latest_ts)
    if cond:
        return cond
    return resp


@orders_bp.post('')
@require_permissions('ORD.CREATE')
@audit_log('ORDER.CREATE', entity='Order', entity_id_key='order.id', meta_keys=['order.orderNumber', 'order.barcode', 'order.totalAmount'])
def create_order():
    session = get_db()
    data = order_payload(request.get_json(silent=True))
    require_fields(data, 'customerId', 'branchId')
    branch_id = parse_int(data['branchId'], 'branchId', minimum=1)
    assert_branch_access(branch_id)
    _assert_references(session, parse_int(data['customerId'], 'customerId', minimum=1), branch_id)
    repo = SqlOrderRepository(session)
    generator = BarcodeGenerator(repo.barcode_exists, current_app.config['BARCODE_MAX_ATTEMPTS'])
    order = create_order_record(repo, data, int(get_jwt_identity()), generator)
    return {'order': order_json(order)}, 201


@orders_bp.get('/search')
@require_permissions('ORD.READ')
def search_orders():
    term = (request.args.get('query') or '').strip()
    if not term:
        raise ValidationError('Search query is required')
    session = get_db()
    q = filter_query_by_branches(session.query(Order), Order.branch_id, current_branch_ids())
    rows = q.filter(search_clauses(term)).order_by(Order.created_at.asc(), Order.id.asc()).all()
    return {'orders': [order_json(o) for o in rows]}


@orders_bp.get('/barcode/<code>')
@require_permissions('ORD.READ')
def get_orders_by_barcode(code: str):
    code = code.strip()
    if not code:
        raise ValidationError('Barcode is required')
    branch_ids = current_branch_ids()
    matches = SqlOrderRepository(get_db()).find_by_barcode(code)
    if branch_ids:
        matches = [o for o in matches if o.branch_id in branch_ids]
    return {'orders': [order_json(o) for o in matches]}


@orders_bp.post('/scan')
@require_permissions('ORD.READ')
def scan_order():
    """Resolve a scanned code and suggest the order's next status (nothing is written)."""
    data = request.get_json(silent=True) or {}
    result = workflow_for_request().resolve_order_by_scan(data.get('code'))
    assert_branch_access(result.order.branch_id)
    return {
        'order': order_json(result.order),
        'suggestedStatus': result.suggested_status,
        'otherMatches': [o.id for o in result.others],
    }


@orders_bp.post('/<int:order_id>/status')
@require_permissions('ORD.STATUS')
@audit_log(
    'ORDER.STATUS.UPDATE',
    entity='Order',
    entity_id_key='order.id',
    entity_id_arg='order_id',
    diff_keys=['order.status'],
    pre_fetch=lambda a, kw: _prefetch_order(kw.get('order_id')),
    meta_keys=['order.orderNumber'],
)
def update_order_status(order_id: int):
    data = request.get_json(silent=True) or {}
    workflow = workflow_for_request()
    order = _load_order(workflow.repository, order_id)
    assert_branch_access(order.branch_id)
    order = workflow.apply_status_update(order_id, data.get('status'))
    return {'order': order_json(order)}


@orders_bp.get('/<int:order_id>')
@require_permissions('ORD.READ')
def get_order(order_id: int):
    order = _load_order(SqlOrderRepository(get_db()), order_id)
    assert_branch_access(order.branch_id)
    return make_cached_item_response({'order': order_json(order)}, order.updated_at)


@orders_bp.put('/<int:order_id>')
@require_permissions('ORD.UPDATE')
@audit_log(
    'ORDER.UPDATE',
    entity='Order',
    entity_id_key='order.id',
    entity_id_arg='order_id',
    diff_keys=['order.status', 'order.totalAmount', 'order.notes', 'order.customerId', 'order.deviceLeft', 'order.sentToCentralService'],
    pre_fetch=lambda a, kw: _prefetch_order(kw.get('order_id')),
)
def update_order(order_id: int):
    session = get_db()
    data = order_payload(request.get_json(silent=True))
    workflow = workflow_for_request()
    order = _load_order(workflow.repository, order_id)
    assert_branch_access(order.branch_id)
    if 'customerId' in data:
        _assert_references(session, parse_int(data['customerId'], 'customerId', minimum=1), None)
    order = update_order_record(workflow, order, data)
    return {'order': order_json(order)}


def _load_order(repo: SqlOrderRepository, order_id: int) -> Order:
    order = repo.find_by_id(order_id)
    if order is None:
        raise NotFound('Order not found')
    return order


def _assert_references(session, customer_id, branch_id):
    if customer_id is not None and session.get(Customer, customer_id) is None:
        raise ValidationError(f'customerId {customer_id} does not exist')
    if branch_id is not None and session.get(Branch, branch_id) is None:
        raise ValidationError(f'branchId {branch_id} does not exist')


def order_json(o: Order):
    return {
        'id': o.id,
        'orderNumber': o.order_number,
        'customerId': o.customer_id,
        'branchId': o.branch_id,
        'createdBy': o.created_by,
        'status': o.status,
        'items': [
            {
                'brand': item.brand,
                'model': item.model,
                'parts': [
                    {'name': p.name, 'price': cents_to_amount(p.price_cents), 'quantity': p.quantity}
                    for p in item.parts
                ],
                'totalPrice': cents_to_amount(item.total_price_cents),
            }
            for item in o.items
        ],
        'totalAmount': cents_to_amount(o.total_amount_cents),
        'notes': o.notes,
        'barcode': o.barcode,
        'deviceLeft': bool(o.device_left),
        'sentToCentralService': bool(o.sent_to_central_service),
        'createdAt': isoformat(o.created_at),
        'updatedAt': isoformat(o.updated_at),
    }


def _prefetch_order(order_id: int):
    o = get_db().get(Order, order_id)
    if not o:
        return {}
    return {'order': {
        'status': o.status,
        'totalAmount': cents_to_amount(o.total_amount_cents),
        'notes': o.notes,
        'customerId': o.customer_id,
        'deviceLeft': bool(o.device_left),
        'sentToCentralService': bool(o.sent_to_central_service),
    }}
