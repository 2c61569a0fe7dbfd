from __future__ import annotations
"""Audit logging decorator to reduce repetitive add_audit() calls in route handlers.

Usage examples:

@audit_log('MANAGER.PERMISSIONS.SET', entity='User', entity_id_key='id',
           diff_keys=['permissions'], pre_fetch=lambda kw: _snapshot(kw['manager_id']))
def update_permissions(manager_id): ...

Parameters:
  action: required audit action code (e.g. MANAGER.DELETE)
  entity: optional entity label (User, Cart)
  entity_id_key: key in the returned JSON object whose value becomes entity_id.
  entity_id_arg: name of the path parameter to use for entity_id (fallback if entity_id_key absent).
  meta_keys: list of keys to project from returned JSON into meta dict (shallow copy).
  diff_keys / pre_fetch: pre_fetch(kwargs) returns the "before" snapshot; changed keys are
    recorded under meta['changes'] as {'before': ..., 'after': ...}.

The entry is written after the view returns, carrying the acting principal's
effective capabilities, and committed on its own.
"""

from functools import wraps
from typing import Any, Callable, Dict, Iterable, Optional

from flask import g

from approvals.services.audit import add_audit
from approvals import get_db


def _extract_payload(rv: Any):
    """Return the JSON-able dict of a Flask return value (dict, (dict, status), ...)."""
    if isinstance(rv, tuple) and rv:
        rv = rv[0]
    return rv if isinstance(rv, dict) else {}


def _actor_perms():
    principal = g.get('principal')
    if principal is None or principal.permissions is None:
        return []
    return principal.permissions.granted()


def audit_log(
    action: str,
    *,
    entity: Optional[str] = None,
    entity_id_key: Optional[str] = None,
    entity_id_arg: Optional[str] = None,
    meta_keys: Optional[Iterable[str]] = None,
    diff_keys: Optional[Iterable[str]] = None,
    pre_fetch: Optional[Callable[[dict], Dict[str, Any]]] = None,
):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            before = pre_fetch(kwargs) if (diff_keys and pre_fetch) else None
            rv = fn(*args, **kwargs)
            data = _extract_payload(rv)
            entity_id = None
            if entity_id_key and entity_id_key in data:
                entity_id = data.get(entity_id_key)
            elif entity_id_arg and entity_id_arg in kwargs:
                entity_id = kwargs.get(entity_id_arg)
            meta = {k: data.get(k) for k in (meta_keys or ()) if k in data}
            if diff_keys and before:
                changes = {
                    k: {'before': before.get(k), 'after': data.get(k)}
                    for k in diff_keys
                    if k in before and k in data and before.get(k) != data.get(k)
                }
                if changes:
                    meta['changes'] = changes
            add_audit(action, entity, entity_id, meta, perms=_actor_perms())
            get_db().commit()
            return rv
        return wrapper
    return outer
