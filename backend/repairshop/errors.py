"""Error taxonomy shared by services and routes.

Every error is a werkzeug ``HTTPException`` so it can be raised from plain
service code (no request context needed) and still be rendered by the unified
JSON error handler registered in ``create_app``:

    {"error": {"status": 404, "title": "Not Found", "detail": "..."}}

Missing or invalid bearer tokens are answered by the JWT loaders with the same
shape and a 401 status.
"""
from __future__ import annotations
from typing import Any, Dict, Optional
from werkzeug.exceptions import BadRequest, Conflict, InternalServerError
from werkzeug.exceptions import NotFound as _HTTPNotFound


class NotFound(_HTTPNotFound):
    description = 'Resource not found'


class ValidationError(BadRequest):
    description = 'Validation failed'


class InvalidStatus(BadRequest):
    description = 'status invalid'


class InvalidTransition(BadRequest):
    description = 'status transition not allowed'


class BarcodeCollision(Conflict):
    description = 'Could not allocate a unique barcode'


class DuplicateOrder(Conflict):
    description = 'Order number or barcode already taken'


class ServerError(InternalServerError):
    description = 'Unexpected error'


def error_payload(status: int, title: str, detail: Optional[str]) -> Dict[str, Any]:
    return {
        'error': {
            'status': status,
            'title': title,
            'detail': detail,
        }
    }


__all__ = [
    'NotFound', 'ValidationError', 'InvalidStatus', 'InvalidTransition',
    'BarcodeCollision', 'DuplicateOrder', 'ServerError', 'error_payload',
]
