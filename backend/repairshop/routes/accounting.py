from __future__ import annotations
from flask import Blueprint, request
from flask_jwt_extended import get_jwt_identity
from sqlalchemy import select, func, case
from repairshop import get_db
from repairshop.errors import ValidationError
from repairshop.models.accounting_entry import AccountingEntry
from repairshop.models.branch import Branch
from repairshop.decorators.auth import require_permissions
from repairshop.decorators.audit import audit_log
from repairshop.services.policy import assert_branch_access, current_branch_ids
from repairshop.utils.timeutil import isoformat, utcnow
from repairshop.utils.validation import cents_to_amount, optional_str, parse_amount_cents, parse_int, validate_choice

accounting_bp = Blueprint('accounting', __name__)


def _branch_arg():
    """branchId query arg; staff without it fall back to their own branch."""
    raw = request.args.get('branchId')
    if raw in (None, ''):
        branch_ids = current_branch_ids()
        if len(branch_ids) == 1:
            return branch_ids[0]
        raise ValidationError('Branch ID is required')
    branch_id = parse_int(raw, 'branchId', minimum=1)
    assert_branch_access(branch_id)
    return branch_id


@accounting_bp.get('')
@require_permissions('ACC.READ')
def list_entries():
    branch_id = _branch_arg()
    stmt = (
        select(AccountingEntry)
        .where(AccountingEntry.branch_id == branch_id)
        .order_by(AccountingEntry.created_at.desc(), AccountingEntry.id.desc())
    )
    return {'entries': [_entry_json(e) for e in get_db().execute(stmt).scalars()]}


@accounting_bp.post('')
@require_permissions('ACC.CREATE')
@audit_log('ACCOUNTING.ENTRY.CREATE', entity='AccountingEntry', entity_id_key='entry.id', meta_keys=['entry.type', 'entry.amount', 'entry.category'])
def create_entry():
    session = get_db()
    data = (request.get_json(silent=True) or {}).get('entry')
    if not isinstance(data, dict):
        raise ValidationError('entry data is required')
    description = (optional_str(data.get('description'), 'description') or '').strip()
    if data.get('branchId') is None or not description:
        raise ValidationError('branchId and description required')
    branch_id = parse_int(data['branchId'], 'branchId', minimum=1)
    assert_branch_access(branch_id)
    if session.get(Branch, branch_id) is None:
        raise ValidationError(f'branchId {branch_id} does not exist')
    e = AccountingEntry(
        branch_id=branch_id,
        description=description,
        amount_cents=parse_amount_cents(data.get('amount'), 'amount'),
        entry_type=validate_choice(data.get('type', AccountingEntry.TYPE_INCOME), AccountingEntry.ALL_TYPES, 'type'),
        category=validate_choice(data.get('category', 'other'), AccountingEntry.ALL_CATEGORIES, 'category'),
        created_by=int(get_jwt_identity()),
    )
    session.add(e)
    session.commit()
    return {'entry': _entry_json(e)}, 201


@accounting_bp.get('/summary')
@require_permissions('ACC.READ')
def branch_summary():
    branch_id = _branch_arg()
    income = func.coalesce(func.sum(case((AccountingEntry.entry_type == AccountingEntry.TYPE_INCOME, AccountingEntry.amount_cents), else_=0)), 0)
    expense = func.coalesce(func.sum(case((AccountingEntry.entry_type == AccountingEntry.TYPE_EXPENSE, AccountingEntry.amount_cents), else_=0)), 0)
    row = get_db().execute(
        select(income, expense, func.count(AccountingEntry.id), func.max(AccountingEntry.created_at))
        .where(AccountingEntry.branch_id == branch_id)
    ).one()
    income_c, expense_c, count, last = row
    return {'summary': {
        'income': cents_to_amount(income_c),
        'expense': cents_to_amount(expense_c),
        'balance': cents_to_amount(income_c - expense_c),
        'entryCount': count,
        'lastUpdated': isoformat(last) if last else isoformat(utcnow()),
    }}


def _entry_json(e: AccountingEntry):
    return {
        'id': e.id,
        'branchId': e.branch_id,
        'amount': cents_to_amount(e.amount_cents),
        'description': e.description,
        'type': e.entry_type,
        'category': e.category,
        'createdBy': e.created_by,
        'createdAt': isoformat(e.created_at),
    }
