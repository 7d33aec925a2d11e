from __future__ import annotations
from flask import Blueprint, request, abort
from sqlalchemy import select
from repairshop import get_db
from repairshop.errors import NotFound, ValidationError
from repairshop.models.branch import Branch
from repairshop.decorators.auth import require_permissions
from repairshop.decorators.audit import audit_log
from repairshop.services.policy import current_branch_ids, filter_query_by_branches
from repairshop.utils.listing import apply_pagination, handle_conditional, make_cached_list_response, make_cached_item_response, latest_timestamp
from repairshop.utils.validation import optional_str, parse_bool

branches_bp = Blueprint('branches', __name__)

FIELDS = {
    'name': 'name',
    'address': 'address',
    'phoneNumber': 'phone_number',
    'email': 'email',
    'manager': 'manager',
}


@branches_bp.get('')
@require_permissions('BR.READ')
def list_branches():
    session = get_db()
    q = filter_query_by_branches(session.query(Branch), Branch.id, current_branch_ids())
    if request.args.get('active') is not None:
        q = q.filter(Branch.active == parse_bool(request.args['active'], 'active'))
    q = q.order_by(Branch.name.asc(), Branch.id.asc())
    paged_q, total, limit, offset = apply_pagination(q)
    rows = paged_q.all()
    latest_ts = latest_timestamp(b.updated_at for b in rows)
    resp, etag = make_cached_list_response([_branch_json(b) for b in rows], total, limit, offset, latest_ts)
    cond = handle_conditional(etag, latest_ts)
    if cond:
        return cond
    return resp


@branches_bp.get('/<int:branch_id>')
@require_permissions('BR.READ')
def get_branch(branch_id: int):
    b = _load_branch(branch_id)
    return make_cached_item_response({'branch': _branch_json(b)}, b.updated_at)


@branches_bp.post('')
@require_permissions('BR.MANAGE')
@audit_log('BRANCH.CREATE', entity='Branch', entity_id_key='branch.id', meta_keys=['branch.name'])
def create_branch():
    session = get_db()
    data = request.get_json(silent=True) or {}
    name = (optional_str(data.get('name'), 'name') or '').strip()
    if not name:
        raise ValidationError('name required')
    if session.execute(select(Branch).where(Branch.name == name)).scalar_one_or_none():
        abort(409, description='Branch name already exists')
    b = Branch(name=name, active=parse_bool(data.get('active', True), 'active'))
    _apply_fields(b, data, skip_name=True)
    session.add(b)
    session.commit()
    return {'branch': _branch_json(b)}, 201


@branches_bp.put('/<int:branch_id>')
@require_permissions('BR.MANAGE')
@audit_log(
    'BRANCH.UPDATE',
    entity='Branch',
    entity_id_key='branch.id',
    diff_keys=['branch.name', 'branch.active', 'branch.manager'],
    pre_fetch=lambda a, kw: _prefetch_branch(kw.get('branch_id')),
)
def update_branch(branch_id: int):
    session = get_db()
    b = _load_branch(branch_id)
    data = request.get_json(silent=True) or {}
    if 'name' in data:
        name = (optional_str(data.get('name'), 'name') or '').strip()
        if not name:
            raise ValidationError('name required')
        clash = session.execute(select(Branch).where(Branch.name == name, Branch.id != b.id)).scalar_one_or_none()
        if clash:
            abort(409, description='Branch name already exists')
    if 'active' in data:
        b.active = parse_bool(data['active'], 'active')
    _apply_fields(b, data)
    session.commit()
    return {'branch': _branch_json(b)}


def _apply_fields(b: Branch, data: dict, skip_name: bool = False):
    for key, attr in FIELDS.items():
        if skip_name and key == 'name':
            continue
        if key in data:
            value = optional_str(data[key], key)
            setattr(b, attr, value.strip() if value is not None else None)


def _load_branch(branch_id: int) -> Branch:
    branch_ids = current_branch_ids()
    if branch_ids and branch_id not in branch_ids:
        abort(403, description='Branch access denied')
    b = get_db().get(Branch, branch_id)
    if not b:
        raise NotFound('Branch not found')
    return b


def _branch_json(b: Branch):
    return {
        'id': b.id,
        'name': b.name,
        'address': b.address,
        'phoneNumber': b.phone_number,
        'email': b.email,
        'manager': b.manager,
        'active': b.active,
    }


def _prefetch_branch(branch_id: int):
    b = get_db().get(Branch, branch_id)
    if not b:
        return {}
    return {'branch': {'name': b.name, 'active': b.active, 'manager': b.manager}}
