"""Environment driven settings and pagination bounds.

Values are read after ``load_dotenv()`` so a local ``.env`` file works the same
as exported variables. ``create_app(config=...)`` overrides win over both.
"""
from __future__ import annotations
from datetime import timedelta
from typing import Any, Dict
import os

DEFAULT_LIMIT = 50
MAX_LIMIT = 200


def env_settings() -> Dict[str, Any]:
    return {
        'JWT_SECRET_KEY': os.getenv('JWT_SECRET_KEY', 'dev-secret'),
        'JWT_ACCESS_TOKEN_EXPIRES': timedelta(minutes=int(os.getenv('JWT_ACCESS_TOKEN_MINUTES', '60'))),
        'DATABASE_URL': os.getenv('DATABASE_URL', 'sqlite:///dev.db'),
        'LOG_LEVEL': os.getenv('LOG_LEVEL', 'INFO').upper(),
        # terminal | wrap
        'ORDER_CLOSED_POLICY': os.getenv('ORDER_CLOSED_POLICY', 'terminal'),
        # free | forward
        'ORDER_TRANSITION_POLICY': os.getenv('ORDER_TRANSITION_POLICY', 'free'),
        'BARCODE_MAX_ATTEMPTS': int(os.getenv('BARCODE_MAX_ATTEMPTS', '5')),
    }


def normalize_pagination(limit_raw, offset_raw):
    try:
        limit = int(limit_raw) if limit_raw is not None else DEFAULT_LIMIT
        offset = int(offset_raw) if offset_raw is not None else 0
    except ValueError:
        raise ValueError('limit/offset must be int')
    limit = max(1, min(limit, MAX_LIMIT))
    offset = max(0, offset)
    return limit, offset
