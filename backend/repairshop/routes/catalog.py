from __future__ import annotations
from flask import Blueprint, request, abort
from sqlalchemy import select
from repairshop import get_db
from repairshop.errors import NotFound, ValidationError
from repairshop.models.catalog import Brand, DeviceModel, Part
from repairshop.decorators.auth import require_permissions
from repairshop.decorators.audit import audit_log
from repairshop.utils.validation import optional_str, parse_amount_cents, parse_bool, parse_int, cents_to_amount

catalog_bp = Blueprint('catalog', __name__)


def _envelope(key: str) -> dict:
    data = (request.get_json(silent=True) or {}).get(key)
    if not isinstance(data, dict):
        raise ValidationError(f'{key} data is required')
    return data


def _active_only() -> bool:
    # inactive entries are hidden unless ?all=true
    return not parse_bool(request.args.get('all', 'false'), 'all')


@catalog_bp.get('/brands')
@require_permissions('CAT.READ')
def list_brands():
    stmt = select(Brand).order_by(Brand.name.asc(), Brand.id.asc())
    if _active_only():
        stmt = stmt.where(Brand.active.is_(True))
    return {'brands': [_brand_json(b) for b in get_db().execute(stmt).scalars()]}


@catalog_bp.post('/brands')
@require_permissions('CAT.MANAGE')
@audit_log('CATALOG.BRAND.CREATE', entity='Brand', entity_id_key='brand.id', meta_keys=['brand.name'])
def create_brand():
    session = get_db()
    data = _envelope('brand')
    name = (optional_str(data.get('name'), 'name') or '').strip()
    if not name:
        raise ValidationError('name required')
    if session.execute(select(Brand).where(Brand.name == name)).scalar_one_or_none():
        abort(409, description='Brand already exists')
    b = Brand(name=name, image_url=optional_str(data.get('imageUrl'), 'imageUrl'), active=parse_bool(data.get('active', True), 'active'))
    session.add(b)
    session.commit()
    return {'brand': _brand_json(b)}, 201


@catalog_bp.get('/brands/<int:brand_id>/models')
@require_permissions('CAT.READ')
def list_models(brand_id: int):
    session = get_db()
    if session.get(Brand, brand_id) is None:
        raise NotFound('Brand not found')
    stmt = select(DeviceModel).where(DeviceModel.brand_id == brand_id).order_by(DeviceModel.name.asc(), DeviceModel.id.asc())
    if _active_only():
        stmt = stmt.where(DeviceModel.active.is_(True))
    return {'models': [_model_json(m) for m in session.execute(stmt).scalars()]}


@catalog_bp.post('/models')
@require_permissions('CAT.MANAGE')
@audit_log('CATALOG.MODEL.CREATE', entity='DeviceModel', entity_id_key='model.id', meta_keys=['model.name', 'model.brandId'])
def create_model():
    session = get_db()
    data = _envelope('model')
    name = (optional_str(data.get('name'), 'name') or '').strip()
    if not name or data.get('brandId') is None:
        raise ValidationError('name and brandId required')
    brand_id = parse_int(data['brandId'], 'brandId', minimum=1)
    if session.get(Brand, brand_id) is None:
        raise ValidationError(f'brandId {brand_id} does not exist')
    m = DeviceModel(name=name, brand_id=brand_id, image_url=optional_str(data.get('imageUrl'), 'imageUrl'),
                    active=parse_bool(data.get('active', True), 'active'))
    session.add(m)
    session.commit()
    return {'model': _model_json(m)}, 201


@catalog_bp.get('/models/<int:model_id>/parts')
@require_permissions('CAT.READ')
def list_parts(model_id: int):
    session = get_db()
    if session.get(DeviceModel, model_id) is None:
        raise NotFound('Model not found')
    stmt = (
        select(Part)
        .where(Part.models.any(DeviceModel.id == model_id))
        .order_by(Part.name.asc(), Part.id.asc())
    )
    if _active_only():
        stmt = stmt.where(Part.active.is_(True))
    return {'parts': [_part_json(p) for p in session.execute(stmt).scalars()]}


@catalog_bp.post('/parts')
@require_permissions('CAT.MANAGE')
@audit_log('CATALOG.PART.CREATE', entity='Part', entity_id_key='part.id', meta_keys=['part.name', 'part.price'])
def create_part():
    session = get_db()
    data = _envelope('part')
    name = (optional_str(data.get('name'), 'name') or '').strip()
    if not name:
        raise ValidationError('name required')
    model_ids = data.get('modelIds') or []
    if not isinstance(model_ids, list):
        raise ValidationError('modelIds must be a list')
    ids = [parse_int(v, 'modelIds', minimum=1) for v in model_ids]
    models = session.execute(select(DeviceModel).where(DeviceModel.id.in_(ids))).scalars().all() if ids else []
    unknown = sorted(set(ids) - {m.id for m in models})
    if unknown:
        raise ValidationError(f'unknown modelIds {unknown}')
    p = Part(
        name=name,
        price_cents=parse_amount_cents(data.get('price', 0), 'price'),
        stock=parse_int(data.get('stock', 0), 'stock', minimum=0),
        active=parse_bool(data.get('active', True), 'active'),
        models=list(models),
    )
    session.add(p)
    session.commit()
    return {'part': _part_json(p)}, 201


def _brand_json(b: Brand):
    return {'id': b.id, 'name': b.name, 'imageUrl': b.image_url, 'active': b.active}


def _model_json(m: DeviceModel):
    return {'id': m.id, 'name': m.name, 'brandId': m.brand_id, 'imageUrl': m.image_url, 'active': m.active}


def _part_json(p: Part):
    return {
        'id': p.id,
        'name': p.name,
        'modelIds': sorted(m.id for m in p.models),
        'price': cents_to_amount(p.price_cents),
        'stock': p.stock,
        'active': p.active,
    }
