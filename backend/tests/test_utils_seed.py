"""Test seeding utilities to reduce duplication.

The database is shared by the whole session, so every helper generates unique
emails / course ids instead of relying on a clean slate.
"""
from typing import Iterable, Mapping, Optional
from uuid import uuid4
from approvals import get_db
from approvals.constants.permissions import ROLE_CANDIDATE, ROLE_MANAGER
from approvals.models.authz import User
from approvals.services.permissions import PermissionSet


def unique(prefix: str) -> str:
    return f'{prefix}-{uuid4().hex[:10]}'


def ensure_user(email: Optional[str] = None, role: str = ROLE_CANDIDATE, password: str = 'pw',
                permissions: Optional[Mapping[str, bool]] = None, name: Optional[str] = None) -> User:
    session = get_db()
    email = email or f"{unique('user')}@example.com"
    u = session.query(User).filter_by(email=email, role=role, is_active=True).one_or_none()
    if not u:
        u = User(name=name or email.split('@')[0], email=email, role=role, password_hash='', profile={},
                 permissions=PermissionSet.from_dict(permissions).to_dict() if role == ROLE_MANAGER else None)
        u.set_password(password)
        session.add(u); session.commit(); session.refresh(u)
    return u


def ensure_candidate(email: Optional[str] = None, password: str = 'pw') -> User:
    return ensure_user(email, ROLE_CANDIDATE, password)


def ensure_manager(*capabilities: str, full_access: bool = False, email: Optional[str] = None) -> User:
    """Manager holding exactly `capabilities` (or everything with full_access)."""
    perms = PermissionSet.of(*capabilities)
    if full_access:
        perms = perms.grant_full_access()
    return ensure_user(email or f"{unique('mgr')}@example.com", ROLE_MANAGER, permissions=perms.to_dict())


def course_id() -> str:
    return unique('course')


def refetch(model, pk):
    """Reload a row from the database, bypassing the identity map."""
    session = get_db()
    obj = session.get(model, pk)
    if obj is not None:
        session.refresh(obj)
    return obj


__all__ = ['unique', 'ensure_user', 'ensure_candidate', 'ensure_manager', 'course_id', 'refetch']
