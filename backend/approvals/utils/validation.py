from __future__ import annotations
"""Reusable validation helpers for request payloads.

Focus on enum-like string fields (kinds, outcomes, statuses, item types) so
scattered membership checks share one 400 error shape.
"""
from typing import Any, Iterable, Mapping, Optional

from approvals.errors import ValidationError


def validate_choice(value: Any, allowed: Iterable[str], field_name: str = 'status') -> str:
    """Validate that value is one of allowed.

    Returns the value (to enable inline usage) or raises ValidationError.
    """
    allowed = tuple(allowed)
    if value not in allowed:
        raise ValidationError(f"{field_name} invalid (expected one of: {', '.join(allowed)})")
    return value


def optional_choice(value: Any, allowed: Iterable[str], field_name: str) -> Optional[str]:
    if value is None or value == '':
        return None
    return validate_choice(value, allowed, field_name)


def require_fields(data: Mapping[str, Any], *names: str):
    missing = [n for n in names if data.get(n) in (None, '')]
    if missing:
        raise ValidationError(f"{' and '.join(missing)} required")


def coerce_int(value: Any, field_name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field_name} must be int')

__all__ = ['validate_choice', 'optional_choice', 'require_fields', 'coerce_int']
