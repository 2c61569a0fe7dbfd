from __future__ import annotations
from typing import Optional
from flask_jwt_extended import get_jwt_identity
from sqlalchemy import select
from approvals.models.authz import User
from approvals.services.access import Principal
from approvals.errors import NotFound, Unauthorized, ValidationError
from approvals.constants.permissions import ROLE_MANAGER
from approvals import get_db


def load_user(user_id: int, *, active_only: bool = True) -> Optional[User]:
    session = get_db()
    q = select(User).where(User.id == user_id)
    if active_only:
        q = q.where(User.is_active.is_(True))
    return session.execute(q).scalar_one_or_none()


def resolve_principal(user_id: int) -> Principal:
    """Identity layer hook: turn a trusted principal id into the value the access checks use."""
    user = load_user(user_id)
    if user is None:
        raise Unauthorized('Account is inactive or no longer exists')
    return user.as_principal()


def current_user() -> User:
    """Active user row for the verified JWT identity of this request."""
    ident = get_jwt_identity()
    user = load_user(int(ident)) if ident is not None else None
    if user is None:
        raise Unauthorized('Account is inactive or no longer exists')
    return user


def current_principal() -> Principal:
    return current_user().as_principal()


def active_user_by_email(email: str) -> Optional[User]:
    session = get_db()
    return session.execute(
        select(User).where(User.email == email.strip().lower(), User.is_active.is_(True))
    ).scalars().first()


def get_manager(manager_id: int) -> User:
    user = load_user(manager_id)
    if user is None:
        raise NotFound('Manager not found')
    if user.role != ROLE_MANAGER:
        raise ValidationError('User is not a manager')
    return user


def assert_not_self(actor_id: int, target_id: int, what: str):
    if actor_id == target_id:
        raise Unauthorized(f'You cannot {what}')
