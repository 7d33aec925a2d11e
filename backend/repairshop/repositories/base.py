"""Repository interface for persisting orders.

The workflow engine and the order service only talk to this interface, so the
same rules run against SQLAlchemy in the app and against the in-memory fake in
unit tests.
"""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import List, Optional

from repairshop.models.order import Order


class OrderRepository(ABC):

    @abstractmethod
    def find_by_id(self, order_id: int) -> Optional[Order]:
        ...

    @abstractmethod
    def find_by_barcode(self, code: str) -> List[Order]:
        """Orders whose barcode equals code or whose order number matches it ignoring case.

        Results are ordered by created_at, then id.
        """

    @abstractmethod
    def save(self, order: Order) -> Order:
        """Persist a new or changed order and return it.

        Raises DuplicateOrder when another order holds the same number or barcode.
        """

    @abstractmethod
    def barcode_exists(self, barcode: str) -> bool:
        ...

    @abstractmethod
    def next_order_number(self) -> str:
        ...


__all__ = ['OrderRepository']
