from __future__ import annotations
from typing import List, Optional
from sqlalchemy import select, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from repairshop.errors import DuplicateOrder
from repairshop.models.order import Order
from repairshop.services.barcode import ORDER_NUMBER_PREFIX, next_order_number_after
from .base import OrderRepository


class SqlOrderRepository(OrderRepository):
    """OrderRepository over a SQLAlchemy session; save() commits."""

    def __init__(self, session: Session):
        self.session = session

    def find_by_id(self, order_id: int) -> Optional[Order]:
        return self.session.execute(select(Order).where(Order.id == order_id)).scalar_one_or_none()

    def find_by_barcode(self, code: str) -> List[Order]:
        stmt = (
            select(Order)
            .where(or_(Order.barcode == code, func.upper(Order.order_number) == code.upper()))
            .order_by(Order.created_at.asc(), Order.id.asc())
        )
        return list(self.session.execute(stmt).scalars())

    def save(self, order: Order) -> Order:
        self.session.add(order)
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise DuplicateOrder(f"Order {order.order_number} conflicts with an existing order") from e
        return order

    def barcode_exists(self, barcode: str) -> bool:
        stmt = select(Order.id).where(Order.barcode == barcode).limit(1)
        return self.session.execute(stmt).first() is not None

    def next_order_number(self) -> str:
        # longest then lexically greatest suffix is the numeric maximum
        stmt = (
            select(Order.order_number)
            .where(func.upper(Order.order_number).like(f"{ORDER_NUMBER_PREFIX}%"))
            .order_by(func.length(Order.order_number).desc(), Order.order_number.desc())
            .limit(1)
        )
        return next_order_number_after(self.session.execute(stmt).scalar_one_or_none())


__all__ = ['SqlOrderRepository']
