from __future__ import annotations
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, String, Text, Boolean, ForeignKey, DateTime
from typing import List, Optional

from repairshop.utils.timeutil import utcnow
from .user import Base


class Order(Base):
    __tablename__ = 'orders'
    # Lifecycle status constants, in workflow order
    STATUS_PENDING = 'pending'
    STATUS_IN_PROCESS = 'in_process'
    STATUS_SHIPPED = 'shipped'
    STATUS_COMPLETED = 'completed'
    STATUS_CLOSED = 'closed'
    STATUS_FLOW = (
        STATUS_PENDING,
        STATUS_IN_PROCESS,
        STATUS_SHIPPED,
        STATUS_COMPLETED,
        STATUS_CLOSED,
    )
    ALL_STATUSES = STATUS_FLOW
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    customer_id: Mapped[int] = mapped_column(ForeignKey('customers.id'), nullable=False, index=True)
    branch_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    created_by: Mapped[int] = mapped_column(ForeignKey('users.id'), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=STATUS_PENDING, index=True)
    total_amount_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # assigned once at creation, never rewritten
    barcode: Mapped[Optional[str]] = mapped_column(String(32), unique=True, nullable=True, index=True)
    device_left: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sent_to_central_service: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    items: Mapped[List["OrderItem"]] = relationship(
        'OrderItem',
        back_populates='order',
        cascade='all, delete-orphan',
        order_by='OrderItem.position',
        lazy='selectin',
    )

    def recompute_totals(self):
        """Refresh every item total and the order total from the part lines."""
        for item in self.items:
            item.recompute_total()
        self.total_amount_cents = sum(item.total_price_cents for item in self.items)
        return self.total_amount_cents


class OrderItem(Base):
    __tablename__ = 'order_items'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, index=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    brand: Mapped[str] = mapped_column(String(80), nullable=False)
    model: Mapped[str] = mapped_column(String(120), nullable=False)
    total_price_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    order = relationship('Order', back_populates='items')
    parts: Mapped[List["OrderPart"]] = relationship(
        'OrderPart',
        back_populates='item',
        cascade='all, delete-orphan',
        order_by='OrderPart.position',
        lazy='selectin',
    )

    def recompute_total(self):
        self.total_price_cents = sum(p.price_cents * p.quantity for p in self.parts)
        return self.total_price_cents


class OrderPart(Base):
    __tablename__ = 'order_parts'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    item_id: Mapped[int] = mapped_column(ForeignKey('order_items.id', ondelete='CASCADE'), nullable=False, index=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    price_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    item = relationship('OrderItem', back_populates='parts')

# Status flow: pending -> in_process -> shipped -> completed -> closed
# Whether closed may wrap back to pending is a configured policy (see services.workflow).

__all__ = ["Order", "OrderItem", "OrderPart"]
