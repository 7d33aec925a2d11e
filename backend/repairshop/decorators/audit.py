from __future__ import annotations
"""Audit logging decorator for mutating route handlers.

Usage examples:

@audit_log('ORDER.CREATE', entity='Order', entity_id_key='order.id', meta_keys=['order.orderNumber'])
def create_order():
    ... return {'order': {...}}, 201

@audit_log('ORDER.STATUS.UPDATE', entity='Order', entity_id_arg='order_id',
           diff_keys=['order.status'], pre_fetch=lambda a, kw: _prefetch_order(kw['order_id']))
def update_status(order_id): ...

Parameters:
  action: required audit action code (e.g. ORDER.CREATE)
  entity: optional entity label (Order, Customer, Branch)
  entity_id_key: dotted path in the returned JSON object whose value becomes entity_id.
  entity_id_arg: name of the path parameter to use for entity_id (fallback if the key is absent).
  meta_keys: dotted paths projected from the returned JSON into meta (keyed by their last segment).
  meta_builder: callable returning a meta dict; receives (data, original_return_value, args, kwargs). Overrides meta_keys.
  diff_keys / pre_fetch: pre_fetch(args, kwargs) returns a snapshot shaped like the response;
    values at diff_keys that changed are recorded as meta['changes'][key] = {before, after}.

Only successful responses are audited: if the handler raises, nothing is written.
"""

from functools import wraps
from typing import Any, Callable, Iterable, Optional, Dict

from repairshop.services.audit import add_audit
from repairshop import get_db

_MISSING = object()


def _extract_payload(rv: Any):
    """Return the JSON-able dict of a view return value (dict, (dict, status), ...)."""
    if isinstance(rv, tuple) and rv:
        return rv[0]
    return rv


def _lookup(data: Any, path: str):
    cur = data
    for part in path.split('.'):
        if not isinstance(cur, dict) or part not in cur:
            return _MISSING
        cur = cur[part]
    return cur


def audit_log(
    action: str,
    *,
    entity: Optional[str] = None,
    entity_id_key: Optional[str] = None,
    entity_id_arg: Optional[str] = None,
    meta_keys: Optional[Iterable[str]] = None,
    meta_builder: Optional[Callable[[dict, Any, tuple, dict], dict]] = None,
    commit: bool = True,
    diff_keys: Optional[Iterable[str]] = None,
    pre_fetch: Optional[Callable[[tuple, dict], Dict[str, Any]]] = None,
):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            before_snapshot = pre_fetch(args, kwargs) if (diff_keys and pre_fetch) else None
            rv = fn(*args, **kwargs)
            data = _extract_payload(rv)
            if not isinstance(data, dict):  # nothing to inspect
                add_audit(action, entity, kwargs.get(entity_id_arg) if entity_id_arg else None, None)
            else:
                entity_id = _lookup(data, entity_id_key) if entity_id_key else _MISSING
                if entity_id is _MISSING:
                    entity_id = kwargs.get(entity_id_arg) if entity_id_arg else None
                if meta_builder:
                    meta = meta_builder(data, rv, args, kwargs)
                elif meta_keys:
                    meta = {}
                    for k in meta_keys:
                        val = _lookup(data, k)
                        if val is not _MISSING:
                            meta[k.rsplit('.', 1)[-1]] = val
                else:
                    meta = None
                if diff_keys and isinstance(before_snapshot, dict):
                    changes = {}
                    for k in diff_keys:
                        before, after = _lookup(before_snapshot, k), _lookup(data, k)
                        if before is not _MISSING and after is not _MISSING and before != after:
                            changes[k.rsplit('.', 1)[-1]] = {'before': before, 'after': after}
                    if changes:
                        meta = dict(meta or {})
                        meta['changes'] = changes
                add_audit(action, entity, entity_id, meta)
            if commit:
                get_db().commit()
            return rv
        return wrapper
    return outer
