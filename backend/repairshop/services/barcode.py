"""Barcode and order number generation.

Barcodes are 12-digit UPC-A style strings: 11 digits taken from the current
millisecond clock mixed with a process-local counter, followed by a mod-10
check digit. Two orders created in the same millisecond therefore still get
different candidates, and the repository is asked before a candidate is used.
"""
from __future__ import annotations
import itertools
import logging
import re
import threading
import time
from typing import Callable, Optional

from repairshop.errors import BarcodeCollision

logger = logging.getLogger(__name__)

BARCODE_LENGTH = 12
ORDER_NUMBER_PREFIX = 'ORD-'
ORDER_NUMBER_WIDTH = 4
DEFAULT_MAX_ATTEMPTS = 5

_ORDER_NUMBER_RE = re.compile(r'^ORD-(\d+)$', re.IGNORECASE)


def upc_check_digit(digits: str) -> int:
    """Check digit for an 11-digit UPC-A body (odd positions weigh 3)."""
    odd = sum(int(d) for d in digits[0::2])
    even = sum(int(d) for d in digits[1::2])
    return (10 - (odd * 3 + even) % 10) % 10


def validate_barcode(code) -> bool:
    if not isinstance(code, str) or len(code) != BARCODE_LENGTH or not code.isdigit():
        return False
    return upc_check_digit(code[:-1]) == int(code[-1])


def parse_order_number(value) -> Optional[int]:
    if not isinstance(value, str):
        return None
    m = _ORDER_NUMBER_RE.match(value.strip())
    return int(m.group(1)) if m else None


def format_order_number(seq: int) -> str:
    return f"{ORDER_NUMBER_PREFIX}{seq:0{ORDER_NUMBER_WIDTH}d}"


def next_order_number_after(last: Optional[str]) -> str:
    """Successor of the highest existing order number (ORD-0001 when there is none)."""
    return format_order_number((parse_order_number(last) or 0) + 1)


class BarcodeGenerator:
    _lock = threading.Lock()
    _counter = itertools.count()

    def __init__(self, exists: Callable[[str], bool], max_attempts: int = DEFAULT_MAX_ATTEMPTS,
                 clock: Callable[[], float] = time.time):
        if max_attempts < 1:
            raise ValueError('max_attempts must be >= 1')
        self.exists = exists
        self.max_attempts = max_attempts
        self.clock = clock

    def candidate(self) -> str:
        with self._lock:
            seq = next(self._counter)
        millis = int(self.clock() * 1000)
        body = f"{(millis * 100 + seq % 100) % 10 ** 11:011d}"
        return body + str(upc_check_digit(body))

    def generate(self) -> str:
        for attempt in range(1, self.max_attempts + 1):
            code = self.candidate()
            if not self.exists(code):
                return code
            logger.warning('Barcode collision on %s (attempt %d/%d)', code, attempt, self.max_attempts)
        raise BarcodeCollision(f'No unique barcode after {self.max_attempts} attempts')


__all__ = [
    'BarcodeGenerator', 'upc_check_digit', 'validate_barcode', 'parse_order_number',
    'format_order_number', 'next_order_number_after', 'BARCODE_LENGTH', 'DEFAULT_MAX_ATTEMPTS', 'ORDER_NUMBER_PREFIX',
]
