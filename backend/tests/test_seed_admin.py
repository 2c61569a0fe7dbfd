import os, sys
from approvals import get_db
from approvals.models.authz import User
from tests.test_utils_seed import unique, ensure_manager
from approvals.constants.permissions import MANAGE_COURSES

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'scripts')))
import seed_admin  # noqa: E402


def test_seed_admin_is_idempotent(app_ctx):
    session = get_db()
    email = f"{unique('root')}@example.com"
    first, created = seed_admin.ensure_initial_admin(session, email, 's3cret')
    session.commit()
    assert created is True
    assert first.as_principal().permissions.full_access
    assert first.verify_password('s3cret')
    again, created_again = seed_admin.ensure_initial_admin(session, email.upper(), 'other')
    session.commit()
    assert created_again is False and again.id == first.id
    assert session.query(User).filter_by(email=email).count() == 1


def test_seed_admin_upgrades_existing_manager(app_ctx):
    session = get_db()
    mgr = ensure_manager(MANAGE_COURSES)
    seeded, created = seed_admin.ensure_initial_admin(session, mgr.email, 'pw')
    session.commit()
    assert created is False
    assert seeded.id == mgr.id
    assert seeded.permission_set.full_access is True


def test_seed_admin_dry_run_writes_nothing(monkeypatch, app_instance):
    email = f"{unique('dry')}@example.com"
    monkeypatch.setenv('SEED_ADMIN_EMAIL', email)
    monkeypatch.setattr(seed_admin, 'create_app', lambda: app_instance)
    assert seed_admin.main(['--dry-run']) == 0
    assert get_db().query(User).filter_by(email=email).count() == 0
