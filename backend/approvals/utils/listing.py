from __future__ import annotations
from typing import Callable, Iterable, Optional, Tuple
from flask import request, make_response
from sqlalchemy.orm import Query
from approvals.config.pagination import normalize_pagination
from approvals.errors import ValidationError
import hashlib
from datetime import datetime, timezone
from email.utils import format_datetime


def canonicalize_timestamp(dt: datetime) -> datetime:
    """Return UTC tz-aware timestamp truncated to whole seconds (microseconds removed)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.replace(microsecond=0)


def apply_pagination(q: Query) -> Tuple[Query, int, int, int]:
    try:
        limit, offset = normalize_pagination(request.args.get('limit'), request.args.get('offset'))
    except ValueError as e:
        raise ValidationError(str(e))
    total = q.count()
    return q.offset(offset).limit(limit), total, limit, offset


def compute_etag(ids: Iterable, total: int, limit: int, offset: int, latest_ts: Optional[str] = '') -> str:
    seed = f"{list(ids)}|{total}|{limit}|{offset}|{latest_ts or ''}"
    return hashlib.sha256(seed.encode()).hexdigest()[:32]


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


def make_cached_list_response(rows: list, total: int, limit: int, offset: int, latest_ts: Optional[datetime] = None):
    # status is part of the seed so a decision on a listed request changes the tag
    ids = [(r.get('id'), r.get('status')) for r in rows]
    latest_c = canonicalize_timestamp(latest_ts) if isinstance(latest_ts, datetime) else None
    latest_iso = latest_c.isoformat().replace('+00:00', 'Z') if latest_c else ''
    etag = compute_etag(ids, total, limit, offset, latest_iso)
    resp = make_response(build_list_payload(rows, total, limit, offset))
    resp.headers['ETag'] = etag
    if latest_c:
        resp.headers['Last-Modified'] = format_datetime(latest_c, usegmt=True)
    return resp, etag


def handle_conditional(etag_value: str):
    """304 response when If-None-Match carries the current ETag, else None."""
    inm = request.headers.get('If-None-Match')
    if inm and inm.strip('"') == etag_value:
        resp = make_response('', 304)
        resp.headers['ETag'] = etag_value
        return resp
    return None


def cached_list(q: Query, serialize: Callable, ts_attr: str = 'created_at'):
    """Paginate `q`, serialize rows and answer conditional GETs."""
    page, total, limit, offset = apply_pagination(q)
    rows = page.all()
    stamps = [getattr(r, ts_attr) for r in rows if isinstance(getattr(r, ts_attr, None), datetime)]
    latest_ts = max((canonicalize_timestamp(s) for s in stamps), default=None)
    resp, etag = make_cached_list_response([serialize(r) for r in rows], total, limit, offset, latest_ts)
    cond = handle_conditional(etag)
    if cond:
        return cond
    return resp
