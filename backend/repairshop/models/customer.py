from __future__ import annotations
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, DateTime
from typing import Optional
from repairshop.utils.timeutil import utcnow
from .user import Base


class Customer(Base):
    __tablename__ = 'customers'
    CONTACT_SMS = 'sms'
    CONTACT_EMAIL = 'email'
    CONTACT_WHATSAPP = 'whatsapp'
    CONTACT_PREFERENCES = (CONTACT_SMS, CONTACT_EMAIL, CONTACT_WHATSAPP)
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    # every contact field is optional; walk-in customers often leave only a phone number
    name: Mapped[Optional[str]] = mapped_column(String(128), nullable=True, index=True)
    phone_number: Mapped[Optional[str]] = mapped_column(String(32), nullable=True, index=True)
    email: Mapped[Optional[str]] = mapped_column(String(128), nullable=True, index=True)
    address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    contact_preference: Mapped[str] = mapped_column(String(16), nullable=False, default=CONTACT_SMS)
    branch_id: Mapped[Optional[int]] = mapped_column(Integer, index=True, nullable=True)
    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

__all__ = ["Customer"]
