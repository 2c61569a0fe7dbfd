from flask import Blueprint, request, g
from approvals import get_db
from approvals.constants.permissions import ROLE_MANAGER
from approvals.decorators.audit import audit_log
from approvals.decorators.auth import require_role, require_full_access
from approvals.errors import ValidationError
from approvals.models.authz import User
from approvals.routes.auth import user_json
from approvals.services.permissions import PermissionSet
from approvals.services.policy import get_manager, assert_not_self, load_user
from approvals.utils.listing import cached_list

managers_bp = Blueprint('managers', __name__)


def _snapshot(manager_id: int):
    user = load_user(manager_id)
    return {'permissions': user.permissions} if user else None


@managers_bp.get('')
@require_role(ROLE_MANAGER)
def list_managers():
    q = get_db().query(User).filter(User.role == ROLE_MANAGER, User.is_active.is_(True)).order_by(User.id.asc())
    return cached_list(q, user_json)


@managers_bp.get('/<int:manager_id>')
@require_role(ROLE_MANAGER)
def get_manager_detail(manager_id: int):
    return user_json(get_manager(manager_id))


@managers_bp.put('/<int:manager_id>/permissions')
@require_full_access()
@audit_log('MANAGER.PERMISSIONS.SET', entity='User', entity_id_key='id',
           diff_keys=['permissions'], pre_fetch=lambda kw: _snapshot(kw.get('manager_id')))
def update_permissions(manager_id: int):
    """Replace the permission document; body is the document itself or {"permissions": {...}}."""
    assert_not_self(g.principal.id, manager_id, 'edit your own permissions')
    manager = get_manager(manager_id)
    data = request.json or {}
    doc = data.get('permissions', data) if isinstance(data, dict) else data
    manager.permissions = PermissionSet.from_dict(doc).to_dict()
    get_db().commit()
    return user_json(manager)


@managers_bp.patch('/<int:manager_id>/permissions/<capability>')
@require_full_access()
@audit_log('MANAGER.PERMISSIONS.FLAG', entity='User', entity_id_key='id',
           diff_keys=['permissions'], pre_fetch=lambda kw: _snapshot(kw.get('manager_id')))
def set_permission_flag(manager_id: int, capability: str):
    """Write one flag; body {"value": bool}. Clears full_access on the target."""
    assert_not_self(g.principal.id, manager_id, 'edit your own permissions')
    manager = get_manager(manager_id)
    data = request.json or {}
    if not isinstance(data, dict) or 'value' not in data:
        raise ValidationError('value required')
    manager.permissions = manager.permission_set.set_flag(capability, data['value']).to_dict()
    get_db().commit()
    return user_json(manager)


@managers_bp.delete('/<int:manager_id>')
@require_full_access()
@audit_log('MANAGER.DELETE', entity='User', entity_id_arg='manager_id', meta_keys=['email'])
def delete_manager(manager_id: int):
    """Deactivate; the row stays for the audit trail and decided requests."""
    assert_not_self(g.principal.id, manager_id, 'delete your own account')
    manager = get_manager(manager_id)
    manager.is_active = False
    get_db().commit()
    return {'id': manager.id, 'email': manager.email, 'is_active': manager.is_active}
