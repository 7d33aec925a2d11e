from __future__ import annotations
from repairshop.errors import ValidationError


def apply_multi_sort(query, sort_expr: str | None, allowed: dict, *tie_breakers):
    """Apply multi-field sort to a SQLAlchemy query.

    sort_expr: comma-separated tokens, each optionally prefixed with '-'.
    allowed: mapping of public field key -> column object.
    tie_breakers: columns appended ascending for deterministic ordering.
    """
    clauses = []
    for raw in (sort_expr or '').split(','):
        token = raw.strip()
        if not token:
            continue
        desc = token.startswith('-')
        key = token[1:] if desc else token
        col = allowed.get(key)
        if col is None:
            raise ValidationError(f'Invalid sort field {key}')
        clauses.append(col.desc() if desc else col.asc())
    clauses.extend(tb.asc() for tb in tie_breakers)
    return query.order_by(*clauses)
