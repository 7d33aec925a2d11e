from __future__ import annotations
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, DateTime
from repairshop.utils.timeutil import utcnow
from .user import Base


class AccountingEntry(Base):
    __tablename__ = 'accounting_entries'
    TYPE_INCOME = 'income'
    TYPE_EXPENSE = 'expense'
    ALL_TYPES = (TYPE_INCOME, TYPE_EXPENSE)
    ALL_CATEGORIES = ('repair', 'parts', 'salary', 'rent', 'utilities', 'other')
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    branch_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    entry_type: Mapped[str] = mapped_column(String(16), nullable=False, default=TYPE_INCOME, index=True)
    category: Mapped[str] = mapped_column(String(32), nullable=False, default='other')
    created_by: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

__all__ = ["AccountingEntry"]
