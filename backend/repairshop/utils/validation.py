from __future__ import annotations
"""Reusable validation helpers for request payloads.

Everything here raises ValidationError / InvalidStatus so callers get
consistent 400 responses without scattering checks through the routes.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable, Mapping
from repairshop.errors import InvalidStatus, ValidationError

# largest value a 64-bit INTEGER column holds
DB_INT_MAX = 2 ** 63 - 1
# per line money ceiling; keeps cents x quantity sums inside DB_INT_MAX
MAX_AMOUNT = Decimal(1000000000)
MAX_QUANTITY = 10000


def validate_status(new_status: Any, allowed: Iterable[str], field_name: str = 'status') -> str:
    """Return new_status when it is one of allowed, else raise InvalidStatus."""
    if not isinstance(new_status, str) or new_status not in allowed:
        raise InvalidStatus(f"{field_name} invalid: {new_status!r}")
    return new_status


def validate_choice(value: Any, allowed: Iterable[str], field_name: str) -> str:
    if value not in allowed:
        raise ValidationError(f"{field_name} must be one of {', '.join(allowed)}")
    return value


def require_fields(data: Mapping[str, Any], *names: str):
    missing = [n for n in names if data.get(n) in (None, '')]
    if missing:
        raise ValidationError(f"{', '.join(missing)} required")


def parse_int(value: Any, field_name: str, minimum: int | None = None, maximum: int | None = None) -> int:
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError(f'{field_name} must be int')
    try:
        parsed = int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(f'{field_name} must be int')
    if minimum is not None and parsed < minimum:
        raise ValidationError(f'{field_name} must be >= {minimum}')
    ceiling = DB_INT_MAX if maximum is None else maximum
    if parsed > ceiling:
        raise ValidationError(f'{field_name} must be <= {ceiling}')
    return parsed


def parse_bool(value: Any, field_name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ('true', '1', 'yes'):
        return True
    if isinstance(value, str) and value.lower() in ('false', '0', 'no'):
        return False
    raise ValidationError(f'{field_name} must be boolean')


def optional_str(value: Any, field_name: str) -> str | None:
    """Return value when it is a string or None, else raise ValidationError."""
    if value is not None and not isinstance(value, str):
        raise ValidationError(f'{field_name} must be a string')
    return value


def parse_amount_cents(value: Any, field_name: str) -> int:
    """Convert a decimal money amount (150, "79.99") to non-negative integer cents."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f'{field_name} must be a number')
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f'{field_name} must be a number')
    if not amount.is_finite() or amount < 0:
        raise ValidationError(f'{field_name} must be a non-negative number')
    if amount > MAX_AMOUNT:
        raise ValidationError(f'{field_name} must be <= {MAX_AMOUNT}')
    try:
        return int((amount * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP))
    except InvalidOperation:
        raise ValidationError(f'{field_name} must be a number')


def cents_to_amount(cents: int | None) -> float:
    return (cents or 0) / 100

__all__ = [
    'validate_status', 'validate_choice', 'require_fields', 'parse_int', 'parse_bool',
    'parse_amount_cents', 'cents_to_amount', 'optional_str', 'MAX_AMOUNT', 'MAX_QUANTITY', 'DB_INT_MAX',
]
