#!/usr/bin/env python
"""Idempotent bootstrap of the first full-access manager.

Nobody can approve a manager_account request until one full-access manager
exists, so a fresh deployment runs this once.

Usage:
    python backend/scripts/seed_admin.py                   # create if missing
    python backend/scripts/seed_admin.py --dry-run         # run logic then rollback (no DB changes)
    python backend/scripts/seed_admin.py --show-managers   # list active managers afterwards

Environment:
    SEED_ADMIN_EMAIL (default admin@example.com), SEED_ADMIN_PASSWORD, SEED_ADMIN_NAME
"""
from __future__ import annotations
import os, sys, argparse, textwrap
from sqlalchemy import select, text

# Allow running from repo root
sys.path.append(os.path.abspath('backend'))
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from approvals import create_app, get_db  # type: ignore
from approvals.constants.permissions import ROLE_MANAGER
from approvals.models.authz import User
from approvals.services.audit import add_audit
from approvals.services.permissions import PermissionSet


def ensure_schema(session):
    try:
        session.execute(text('SELECT 1 FROM users LIMIT 1'))
    except Exception:
        # bootstrap only; real deployments run `alembic upgrade head`
        session.rollback()
        from approvals.models.authz import Base
        from approvals.models import approval, audit, cart  # noqa: F401
        Base.metadata.create_all(session.get_bind())
    session.commit()


def ensure_initial_admin(session, email: str, password: str, name: str = 'Administrator'):
    """Return (manager, created). An active full-access manager with `email` is reused."""
    email = email.strip().lower()
    existing = session.execute(
        select(User).where(User.email == email, User.role == ROLE_MANAGER, User.is_active.is_(True))
    ).scalars().first()
    if existing:
        if not existing.as_principal().permissions.full_access:
            existing.permissions = PermissionSet.from_dict(existing.permissions).grant_full_access().to_dict()
            add_audit('MANAGER.PERMISSIONS.SET', 'User', existing.id, {'source': 'seed_admin'}, actor_id=0)
        return existing, False
    user = User(name=name, email=email, role=ROLE_MANAGER, permissions=PermissionSet.full().to_dict(), profile={})
    user.set_password(password)
    session.add(user)
    session.flush()
    add_audit('MANAGER.SEED', 'User', user.id, {'email': email}, actor_id=0)
    return user, True


def print_managers(session):
    rows = session.execute(
        select(User).where(User.role == ROLE_MANAGER, User.is_active.is_(True)).order_by(User.id)
    ).scalars().all()
    if not rows:
        print('[INFO] No active managers.')
        return
    width = max(len(u.email) for u in rows)
    print(f"{'Email'.ljust(width)} | Capabilities")
    print('-' * (width + 30))
    for u in rows:
        perms = u.as_principal().permissions
        label = 'full_access' if perms.full_access else ', '.join(perms.granted()) or '-'
        print(f"{u.email.ljust(width)} | {label}")


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        description='Seed the first full-access manager',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""Examples:\n  seed normally: seed_admin.py\n  dry run: seed_admin.py --dry-run\n""")
    )
    p.add_argument('--dry-run', action='store_true', help='Rollback after operations (no commit)')
    p.add_argument('--show-managers', action='store_true', help='Print active managers after seeding')
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    app = create_app()
    with app.app_context():
        session = get_db()
        ensure_schema(session)
        user, created = ensure_initial_admin(
            session,
            os.getenv('SEED_ADMIN_EMAIL', 'admin@example.com'),
            os.getenv('SEED_ADMIN_PASSWORD', 'ChangeMe123!'),
            os.getenv('SEED_ADMIN_NAME', 'Administrator'),
        )
        email = user.email
        if args.show_managers:
            print_managers(session)
        if args.dry_run:
            session.rollback()
            print(f"[DRY-RUN] (rolled back) Admin would be {'created' if created else 'kept'}: {email}")
        else:
            session.commit()
            print(f"[DONE] Admin {'created' if created else 'already present'}: {email}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
