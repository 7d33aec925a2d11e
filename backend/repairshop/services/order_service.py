from __future__ import annotations
import logging
from typing import Any, Dict, List, Mapping, Optional
from sqlalchemy import or_

from repairshop.errors import DuplicateOrder, ValidationError
from repairshop.models.order import Order, OrderItem, OrderPart
from repairshop.repositories.base import OrderRepository
from repairshop.services.barcode import BarcodeGenerator
from repairshop.services.workflow import OrderWorkflow
from repairshop.utils.timeutil import utcnow
from repairshop.utils.validation import MAX_QUANTITY, optional_str, parse_amount_cents, parse_bool, parse_int, require_fields

logger = logging.getLogger(__name__)

# fields the server owns; clients may echo them back but never change them
IMMUTABLE_FIELDS = {'orderNumber': 'order_number', 'barcode': 'barcode'}
# concurrent creates may race for the same next number
ORDER_NUMBER_ATTEMPTS = 5


def build_items(items_data: Any) -> List[OrderItem]:
    """Turn the wire list of items into OrderItem rows with computed totals."""
    if items_data is None:
        return []
    if not isinstance(items_data, list):
        raise ValidationError('items must be a list')
    items: List[OrderItem] = []
    for i, raw in enumerate(items_data):
        if not isinstance(raw, dict):
            raise ValidationError(f'items[{i}] must be an object')
        if not raw.get('brand') or not raw.get('model'):
            raise ValidationError(f'items[{i}]: brand and model required')
        parts_data = raw.get('parts') or []
        if not isinstance(parts_data, list):
            raise ValidationError(f'items[{i}].parts must be a list')
        parts = []
        for j, p in enumerate(parts_data):
            label = f'items[{i}].parts[{j}]'
            if not isinstance(p, dict) or not p.get('name'):
                raise ValidationError(f'{label}.name required')
            parts.append(OrderPart(
                position=j,
                name=optional_str(p['name'], f'{label}.name'),
                price_cents=parse_amount_cents(p.get('price'), f'{label}.price'),
                quantity=parse_int(p.get('quantity'), f'{label}.quantity', minimum=1, maximum=MAX_QUANTITY),
            ))
        item = OrderItem(
            position=i,
            brand=optional_str(raw['brand'], f'items[{i}].brand'),
            model=optional_str(raw['model'], f'items[{i}].model'),
            parts=parts,
        )
        item.recompute_total()
        items.append(item)
    return items


def order_payload(body: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Unwrap the {"order": {...}} request envelope."""
    data = (body or {}).get('order')
    if not isinstance(data, dict):
        raise ValidationError('Order data is required')
    return data


def create_order(repository: OrderRepository, data: Mapping[str, Any], created_by: int,
                 generator: Optional[BarcodeGenerator] = None) -> Order:
    """Build, number and persist a new pending order.

    Any client supplied status, orderNumber, barcode or totalAmount is ignored.
    """
    require_fields(data, 'customerId', 'branchId')
    generator = generator or BarcodeGenerator(repository.barcode_exists)
    order = Order(
        customer_id=parse_int(data.get('customerId'), 'customerId', minimum=1),
        branch_id=parse_int(data.get('branchId'), 'branchId', minimum=1),
        created_by=created_by,
        status=Order.STATUS_PENDING,
        notes=optional_str(data.get('notes'), 'notes') or None,
        device_left=parse_bool(data.get('deviceLeft', False), 'deviceLeft'),
        sent_to_central_service=parse_bool(data.get('sentToCentralService', False), 'sentToCentralService'),
        items=build_items(data.get('items')),
    )
    order.recompute_totals()
    for attempt in range(1, ORDER_NUMBER_ATTEMPTS + 1):
        order.order_number = repository.next_order_number()
        order.barcode = generator.generate()
        try:
            repository.save(order)
            break
        except DuplicateOrder:
            if attempt == ORDER_NUMBER_ATTEMPTS:
                raise
            logger.warning('Order number %s taken, retrying (attempt %d)', order.order_number, attempt)
    logger.info('Order %s created (barcode %s, total %d cents)', order.order_number, order.barcode, order.total_amount_cents)
    return order


def update_order(workflow: OrderWorkflow, order: Order, data: Mapping[str, Any]) -> Order:
    """Merge an edit into order and persist it through the workflow's repository."""
    for key, attr in IMMUTABLE_FIELDS.items():
        if key in data and data[key] != getattr(order, attr):
            raise ValidationError(f'{key} cannot be changed')
    # Validate everything before touching the order so a rejected edit leaves it as stored
    changes: Dict[str, Any] = {}
    if 'notes' in data:
        changes['notes'] = optional_str(data['notes'], 'notes') or None
    if 'deviceLeft' in data:
        changes['device_left'] = parse_bool(data['deviceLeft'], 'deviceLeft')
    if 'sentToCentralService' in data:
        changes['sent_to_central_service'] = parse_bool(data['sentToCentralService'], 'sentToCentralService')
    if 'customerId' in data:
        changes['customer_id'] = parse_int(data['customerId'], 'customerId', minimum=1)
    if 'status' in data:
        changes['status'] = workflow.check_transition(order.status, data['status'])
    items = build_items(data['items']) if 'items' in data else None

    for attr, value in changes.items():
        setattr(order, attr, value)
    if items is not None:
        order.items = items
        order.recompute_totals()
    order.updated_at = utcnow()
    return workflow.repository.save(order)


def search_clauses(term: str):
    """SQL conditions matching term as a case-insensitive substring of order fields."""
    like = f'%{term}%'
    return or_(
        Order.order_number.ilike(like),
        Order.barcode.ilike(like),
        Order.status.ilike(like),
        Order.notes.ilike(like),
        Order.items.any(OrderItem.brand.ilike(like)),
        Order.items.any(OrderItem.model.ilike(like)),
        Order.items.any(OrderItem.parts.any(OrderPart.name.ilike(like))),
    )


__all__ = ['build_items', 'order_payload', 'create_order', 'update_order', 'search_clauses']
