from flask import Blueprint, request
from approvals import get_db
from approvals.decorators.auth import require_full_access
from approvals.models.audit import AuditLog
from approvals.utils.listing import cached_list
from approvals.utils.validation import coerce_int

audit_bp = Blueprint('audit', __name__)


def audit_json(a: AuditLog):
    return {
        'id': a.id,
        'actor_id': a.actor_id,
        'action': a.action,
        'entity': a.entity,
        'entity_id': a.entity_id,
        'perms': (a.perms_snapshot or {}).get('perms', []),
        'meta': a.meta or {},
        'created_at': a.created_at.isoformat() if a.created_at else None,
    }


@audit_bp.get('/logs')
@require_full_access()
def list_audit_logs():
    q = get_db().query(AuditLog)
    action = request.args.get('action')
    if action:
        q = q.filter(AuditLog.action == action)
    if request.args.get('actor_id'):
        q = q.filter(AuditLog.actor_id == coerce_int(request.args['actor_id'], 'actor_id'))
    entity = request.args.get('entity')
    if entity:
        q = q.filter(AuditLog.entity == entity)
    return cached_list(q.order_by(AuditLog.id.desc()), audit_json)
