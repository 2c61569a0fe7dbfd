from __future__ import annotations
from typing import Any, Dict, List, Optional
from flask_jwt_extended import get_jwt_identity
from approvals import get_db
from approvals.models.audit import AuditLog


def _jwt_actor() -> Optional[int]:
    try:
        ident = get_jwt_identity()
    except RuntimeError:
        return None  # no request / JWT context (service called directly, scripts)
    return int(ident) if ident is not None else None


def add_audit(
    action: str,
    entity: Optional[str] = None,
    entity_id: Optional[Any] = None,
    meta: Optional[Dict[str, Any]] = None,
    *,
    actor_id: Optional[int] = None,
    perms: Optional[List[str]] = None,
):
    """Persist an audit log entry within the current DB session.

    Parameters:
      action: short action code e.g. REQUEST.SUBMIT, REQUEST.DECIDE, MANAGER.PERMISSIONS.SET
      entity: optional entity name (ApprovalRequest, User, Cart)
      entity_id: optional primary key (stored as string)
      meta: additional JSON-safe dictionary (will be shallow copied)
      actor_id: acting principal; falls back to the JWT identity of the current request
      perms: effective capabilities of the actor at the time of the change
    """
    session = get_db()
    actor = actor_id if actor_id is not None else _jwt_actor()
    log = AuditLog(
        actor_id=actor or 0,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        perms_snapshot={'perms': list(perms or [])},
        meta=dict(meta or {}),
    )
    session.add(log)
    # No commit here; caller's transaction boundary controls durability.
    return log
