from __future__ import annotations
from typing import List, Optional, Set
from flask import abort
from flask_jwt_extended import get_jwt
from repairshop.constants.permissions import ROLE_PRESETS, ALL_PERMISSION_CODES
from repairshop.models.user import User


def permissions_for_role(role: str) -> List[str]:
    """Expand a role preset into concrete permission codes ('*' means all)."""
    preset = ROLE_PRESETS.get(role, [])
    if '*' in preset:
        return sorted(ALL_PERMISSION_CODES)
    return sorted(preset)


def branch_ids_for_user(user: User) -> List[int]:
    """Branches a user is scoped to; empty means every branch (admins)."""
    if user.role == User.ROLE_ADMIN or user.branch_id is None:
        return []
    return [user.branch_id]


def token_claims(user: User) -> dict:
    return {
        'role': user.role,
        'perms': permissions_for_role(user.role),
        'branch_ids': branch_ids_for_user(user),
    }


def current_permissions() -> Set[str]:
    claims = get_jwt()
    return set(claims.get('perms', []))


def has_permissions(*codes: str) -> bool:
    perms = current_permissions()
    return all(c in perms for c in codes)


def current_branch_ids() -> List[int]:
    return list(get_jwt().get('branch_ids') or [])


def assert_branch_access(branch_id: Optional[int]):
    branch_ids = current_branch_ids()
    if not branch_ids:
        return  # No scoping
    if branch_id not in branch_ids:
        abort(403, description='Branch access denied')


def filter_query_by_branches(query, model_branch_column, branch_ids):
    """Return query filtered by branch ids if list not empty."""
    if branch_ids:
        return query.filter(model_branch_column.in_(branch_ids))
    return query
