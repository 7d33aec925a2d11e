from __future__ import annotations
from flask import Blueprint, request, abort, current_app
from flask_jwt_extended import create_access_token, create_refresh_token, jwt_required, get_jwt_identity, get_jwt
from sqlalchemy import select
from repairshop import get_db, jwt
from repairshop.errors import NotFound, ValidationError
from repairshop.models.user import User
from repairshop.decorators.auth import require_permissions
from repairshop.decorators.audit import audit_log
from repairshop.services.policy import token_claims
from repairshop.utils.validation import optional_str, parse_int, validate_choice

auth_bp = Blueprint('auth', __name__)

# JTIs revoked by /auth/logout; process local, cleared on restart
_REVOKED_JTIS: set = set()


@jwt.token_in_blocklist_loader
def _token_revoked(jwt_header, jwt_payload) -> bool:
    return jwt_payload.get('jti') in _REVOKED_JTIS


@auth_bp.post('/auth/login')
def login():
    data = request.get_json(silent=True) or {}
    email = (optional_str(data.get('email'), 'email') or '').strip().lower()
    password = optional_str(data.get('password'), 'password')
    if not email or not password:
        raise ValidationError('email & password required')
    session = get_db()
    user = session.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if not user or not user.is_active or not user.verify_password(password):
        current_app.logger.info('Failed login for %s', email)
        abort(401, description='Invalid credentials')
    # JWT identity must be a string (flask-jwt-extended v4 requirement)
    claims = token_claims(user)
    return {
        'user': _user_json(user),
        'accessToken': create_access_token(identity=str(user.id), additional_claims=claims),
        'refreshToken': create_refresh_token(identity=str(user.id)),
    }


@auth_bp.post('/auth/refresh')
@jwt_required(refresh=True)
def refresh():
    user = _current_user()
    if not user.is_active:
        abort(401, description='User disabled')
    return {'accessToken': create_access_token(identity=str(user.id), additional_claims=token_claims(user))}


@auth_bp.get('/auth/me')
@jwt_required()
def me():
    user = _current_user()
    return {'user': {**_user_json(user), **token_claims(user)}}


@auth_bp.post('/auth/logout')
@jwt_required(verify_type=False)
def logout():
    _REVOKED_JTIS.add(get_jwt()['jti'])
    return {'message': 'Logged out'}


@auth_bp.get('/users')
@require_permissions('USR.MANAGE')
def list_users():
    rows = get_db().execute(select(User).order_by(User.id.asc())).scalars().all()
    return {'users': [_user_json(u) for u in rows]}


@auth_bp.post('/users')
@require_permissions('USR.MANAGE')
@audit_log('USER.CREATE', entity='User', entity_id_key='user.id', meta_keys=['user.email', 'user.role'])
def create_user():
    session = get_db()
    data = request.get_json(silent=True) or {}
    name = (optional_str(data.get('name'), 'name') or '').strip()
    email = (optional_str(data.get('email'), 'email') or '').strip().lower()
    password = optional_str(data.get('password'), 'password')
    if not name or not email or not password:
        raise ValidationError('name, email & password required')
    role = validate_choice(data.get('role', User.ROLE_BRANCH_STAFF), User.ALL_ROLES, 'role')
    branch_id = parse_int(data['branchId'], 'branchId', minimum=1) if data.get('branchId') is not None else None
    if role != User.ROLE_ADMIN and branch_id is None:
        raise ValidationError('branchId required for non-admin users')
    if session.execute(select(User).where(User.email == email)).scalar_one_or_none():
        abort(409, description='User already exists with this email')
    user = User(name=name, email=email, password_hash='', role=role, branch_id=branch_id)
    user.set_password(password)
    session.add(user)
    session.commit()
    return {'user': _user_json(user)}, 201


def _current_user() -> User:
    # Identity stored as string, cast back to int for DB lookup
    user = get_db().get(User, int(get_jwt_identity()))
    if not user:
        raise NotFound('User not found')
    return user


def _user_json(u: User):
    return {
        'id': u.id,
        'name': u.name,
        'email': u.email,
        'role': u.role,
        'branchId': u.branch_id,
        'active': u.is_active,
    }
