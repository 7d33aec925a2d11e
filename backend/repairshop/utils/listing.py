from __future__ import annotations
from typing import Iterable, Optional, Tuple
from flask import request, make_response, jsonify
from sqlalchemy.orm import Query
from repairshop.config.settings import normalize_pagination
from repairshop.errors import ValidationError
import hashlib
import json
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime, format_datetime


def canonicalize_timestamp(dt: datetime) -> datetime:
    """Return UTC tz-aware timestamp truncated to whole seconds (microseconds removed)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).replace(microsecond=0)


def apply_pagination(q: Query) -> Tuple[Query, int, int, int]:
    try:
        limit, offset = normalize_pagination(request.args.get('limit'), request.args.get('offset'))
    except ValueError as e:
        raise ValidationError(str(e))
    total = q.count()
    return q.offset(offset).limit(limit), total, limit, offset


def compute_etag(payload) -> str:
    """Strong validator over the serialized response body."""
    blob = json.dumps(payload, sort_keys=True, separators=(',', ':'), default=str)
    return hashlib.sha256(blob.encode()).hexdigest()[:32]


def build_list_payload(rows: list, total: int, limit: int, offset: int):
    return {
        'data': rows,
        'pagination': {
            'total': total,
            'limit': limit,
            'offset': offset,
            'returned': len(rows)
        }
    }


def _http_date(dt: datetime) -> str:
    """Return RFC1123 HTTP-date string in GMT."""
    return format_datetime(dt, usegmt=True)


def _iso(dt: datetime) -> str:
    return dt.isoformat().replace('+00:00', 'Z')


def _set_validators(resp, etag: str, latest_c: Optional[datetime]):
    resp.headers['ETag'] = etag
    if latest_c:
        resp.headers['Last-Modified'] = _http_date(latest_c)
        resp.headers['X-Last-Modified-ISO'] = _iso(latest_c)
    return resp


def latest_timestamp(values: Iterable[Optional[datetime]]) -> Optional[datetime]:
    stamps = [canonicalize_timestamp(v) for v in values if isinstance(v, datetime)]
    return max(stamps) if stamps else None


def make_cached_list_response(rows: list, total: int, limit: int, offset: int, latest_ts: Optional[datetime] = None):
    latest_c = canonicalize_timestamp(latest_ts) if isinstance(latest_ts, datetime) else None
    payload = build_list_payload(rows, total, limit, offset)
    etag = compute_etag(payload)
    resp = make_response(payload)
    return _set_validators(resp, etag, latest_c), etag


def make_cached_item_response(body: dict, latest_ts: Optional[datetime]):
    """Single-resource response carrying ETag / Last-Modified, or a bare 304."""
    latest_c = canonicalize_timestamp(latest_ts) if isinstance(latest_ts, datetime) else None
    etag = compute_etag(body)
    cond = handle_conditional(etag, latest_c)
    if cond:
        return cond
    return _set_validators(make_response(jsonify(body)), etag, latest_c)


def _parse_if_modified_since(header_val: str) -> Optional[datetime]:
    if not header_val:
        return None
    # Try ISO 8601 first
    try:
        dt = datetime.fromisoformat(header_val.replace('Z', '+00:00'))
    except ValueError:
        dt = None
    if dt is None:
        # Try HTTP-date (RFC 1123)
        try:
            dt = parsedate_to_datetime(header_val)
        except (TypeError, ValueError):
            return None
    if dt and dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def handle_conditional(etag_value: str, latest_ts: Optional[datetime]):
    """Evaluate conditional request headers.

    Precedence: If-None-Match over If-Modified-Since (per RFC 9110 semantics).
    Returns a 304 response object if conditions satisfied, else None.
    """
    latest_c = canonicalize_timestamp(latest_ts) if latest_ts else None
    inm = request.headers.get('If-None-Match')
    if inm:
        if inm.strip('"') == etag_value:
            return _set_validators(make_response('', 304), etag_value, latest_c)
        # a mismatched If-None-Match disables If-Modified-Since
        return None
    ims_dt = _parse_if_modified_since(request.headers.get('If-Modified-Since'))
    if ims_dt and latest_c and latest_c <= canonicalize_timestamp(ims_dt):
        return _set_validators(make_response('', 304), etag_value, latest_c)
    return None
