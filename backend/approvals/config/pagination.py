"""Limit/offset bounds shared by every listing endpoint (overridable via env)."""
import os

DEFAULT_LIMIT = int(os.getenv('PAGE_DEFAULT_LIMIT', '50'))
MAX_LIMIT = int(os.getenv('PAGE_MAX_LIMIT', '200'))


def _as_int(raw, default: int, name: str) -> int:
    if raw is None or raw == '':
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValueError(f'{name} must be int')


def normalize_pagination(limit_raw, offset_raw):
    """Return (limit, offset) clamped to 1..MAX_LIMIT and >= 0."""
    limit = _as_int(limit_raw, DEFAULT_LIMIT, 'limit')
    offset = _as_int(offset_raw, 0, 'offset')
    return max(1, min(limit, MAX_LIMIT)), max(0, offset)
