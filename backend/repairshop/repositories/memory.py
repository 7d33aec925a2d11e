from __future__ import annotations
from typing import Dict, List, Optional
import itertools

from repairshop.errors import DuplicateOrder
from repairshop.models.order import Order
from repairshop.services.barcode import next_order_number_after, parse_order_number
from repairshop.utils.timeutil import utcnow
from .base import OrderRepository


class InMemoryOrderRepository(OrderRepository):
    """Dict backed OrderRepository for unit tests and scripts.

    Orders are plain transient model instances. Column defaults normally filled
    in by the database on flush (id, status, timestamps) are applied in save().
    """

    def __init__(self, orders: Optional[List[Order]] = None):
        self._orders: Dict[int, Order] = {}
        self._ids = itertools.count(1)
        for o in orders or []:
            self.save(o)

    def find_by_id(self, order_id: int) -> Optional[Order]:
        return self._orders.get(order_id)

    def find_by_barcode(self, code: str) -> List[Order]:
        upper = code.upper()
        matches = [
            o for o in self._orders.values()
            if o.barcode == code or (o.order_number or '').upper() == upper
        ]
        return sorted(matches, key=lambda o: (o.created_at, o.id))

    def save(self, order: Order) -> Order:
        now = utcnow()
        for other in self._orders.values():
            if other is not order and other.order_number == order.order_number:
                raise DuplicateOrder(f"Order {order.order_number} conflicts with an existing order")
        if order.id is None:
            order.id = next(self._ids)
            if order.created_at is None:
                order.created_at = now
        if order.status is None:
            order.status = Order.STATUS_PENDING
        if order.total_amount_cents is None:
            order.recompute_totals()
        order.device_left = bool(order.device_left)
        order.sent_to_central_service = bool(order.sent_to_central_service)
        if order.updated_at is None:
            order.updated_at = now
        self._orders[order.id] = order
        return order

    def barcode_exists(self, barcode: str) -> bool:
        return any(o.barcode == barcode for o in self._orders.values())

    def next_order_number(self) -> str:
        numbered = [o.order_number for o in self._orders.values() if parse_order_number(o.order_number) is not None]
        last = max(numbered, key=parse_order_number, default=None)
        return next_order_number_after(last)

    def all(self) -> List[Order]:
        return sorted(self._orders.values(), key=lambda o: o.id)


__all__ = ['InMemoryOrderRepository']
