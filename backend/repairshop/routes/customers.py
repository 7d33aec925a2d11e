from __future__ import annotations
from flask import Blueprint, request
from sqlalchemy import or_, select
from repairshop import get_db
from repairshop.errors import NotFound, ValidationError
from repairshop.models.customer import Customer
from repairshop.models.order import Order
from repairshop.decorators.auth import require_permissions
from repairshop.decorators.audit import audit_log
from repairshop.services.policy import assert_branch_access, current_branch_ids
from repairshop.utils.listing import apply_pagination, handle_conditional, make_cached_list_response, latest_timestamp
from repairshop.utils.sorting import apply_multi_sort
from repairshop.utils.timeutil import isoformat, utcnow
from repairshop.utils.validation import optional_str, parse_int, validate_choice
from repairshop.routes.orders import order_json

customers_bp = Blueprint('customers', __name__)

SEARCH_LIMIT = 10

# wire key -> column attribute
EDITABLE = {
    'name': 'name',
    'phoneNumber': 'phone_number',
    'email': 'email',
    'address': 'address',
    'contactPreference': 'contact_preference',
    'branchId': 'branch_id',
}


@customers_bp.get('')
@require_permissions('CUST.READ')
def list_customers():
    session = get_db()
    q = session.query(Customer)
    allowed = {
        'name': Customer.name,
        'createdAt': Customer.created_at,
        'updatedAt': Customer.updated_at,
        'id': Customer.id,
    }
    q = apply_multi_sort(q, request.args.get('sort'), allowed, Customer.id)
    paged_q, total, limit, offset = apply_pagination(q)
    rows = paged_q.all()
    latest_ts = latest_timestamp(c.updated_at for c in rows)
    resp, etag = make_cached_list_response([_customer_json(c) for c in rows], total, limit, offset, latest_ts)
    cond = handle_conditional(etag, latest_ts)
    if cond:
        return cond
    return resp


@customers_bp.get('/search')
@require_permissions('CUST.READ')
def search_customers():
    """Customers matching on contact fields, plus owners of orders whose number or barcode matches."""
    term = (request.args.get('query') or '').strip()
    if not term:
        raise ValidationError('Search query is required')
    session = get_db()
    like = f'%{term}%'
    direct = session.execute(
        select(Customer)
        .where(or_(
            Customer.name.ilike(like),
            Customer.phone_number.ilike(like),
            Customer.email.ilike(like),
            Customer.address.ilike(like),
        ))
        .order_by(Customer.id.asc())
        .limit(SEARCH_LIMIT)
    ).scalars().all()
    owner_ids = select(Order.customer_id).where(or_(Order.order_number.ilike(like), Order.barcode.ilike(like)))
    via_orders = session.execute(
        select(Customer).where(Customer.id.in_(owner_ids)).order_by(Customer.id.asc())
    ).scalars().all()
    seen = set()
    merged = []
    for c in list(direct) + list(via_orders):
        if c.id not in seen:
            seen.add(c.id)
            merged.append(c)
    return {'customers': [_customer_json(c) for c in merged]}


@customers_bp.get('/phone')
@require_permissions('CUST.READ')
def find_by_phone():
    phone = (request.args.get('phone') or '').strip()
    if not phone:
        raise ValidationError('Phone number is required')
    c = get_db().execute(
        select(Customer).where(Customer.phone_number == phone).order_by(Customer.id.asc()).limit(1)
    ).scalar_one_or_none()
    return {'customer': _customer_json(c) if c else None}


@customers_bp.post('')
@require_permissions('CUST.MANAGE')
@audit_log('CUSTOMER.SAVE', entity='Customer', entity_id_key='customer.id', meta_keys=['isNew'])
def save_customer():
    """Create a customer, or update it when the payload carries an id."""
    session = get_db()
    data = (request.get_json(silent=True) or {}).get('customer')
    if not isinstance(data, dict):
        raise ValidationError('Customer data is required')
    values = {}
    for key, attr in EDITABLE.items():
        if key in data:
            value = data[key] if key == 'branchId' else optional_str(data[key], key)
            values[attr] = value if value != '' else None
    if values.get('contact_preference') is not None:
        validate_choice(values['contact_preference'], Customer.CONTACT_PREFERENCES, 'contactPreference')
    else:
        values.pop('contact_preference', None)
    if values.get('branch_id') is not None:
        values['branch_id'] = parse_int(values['branch_id'], 'branchId', minimum=1)
        assert_branch_access(values['branch_id'])

    if data.get('id') is not None:
        c = session.get(Customer, parse_int(data['id'], 'id', minimum=1))
        if c is None:
            raise NotFound('Customer not found')
        is_new = False
    else:
        c = Customer()
        session.add(c)
        is_new = True
    for attr, value in values.items():
        setattr(c, attr, value)
    c.updated_at = utcnow()
    session.commit()
    return {'customer': _customer_json(c), 'isNew': is_new}, 201 if is_new else 200


@customers_bp.get('/<int:customer_id>/orders')
@require_permissions('CUST.READ', 'ORD.READ')
def customer_orders(customer_id: int):
    session = get_db()
    if session.get(Customer, customer_id) is None:
        raise NotFound('Customer not found')
    q = session.query(Order).filter(Order.customer_id == customer_id)
    branch_ids = current_branch_ids()
    if branch_ids:
        q = q.filter(Order.branch_id.in_(branch_ids))
    rows = q.order_by(Order.created_at.asc(), Order.id.asc()).all()
    return {'orders': [order_json(o) for o in rows]}


def _customer_json(c: Customer):
    return {
        'id': c.id,
        'name': c.name,
        'phoneNumber': c.phone_number,
        'email': c.email,
        'address': c.address,
        'contactPreference': c.contact_preference,
        'branchId': c.branch_id,
        'createdAt': isoformat(c.created_at),
        'updatedAt': isoformat(c.updated_at),
    }
