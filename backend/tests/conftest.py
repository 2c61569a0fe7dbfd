import os, sys, pytest
# Ensure the backend directory is on path so 'approvals' and 'tests' can be imported
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
from approvals import create_app, get_db
from approvals.models.authz import Base
# Import all model modules to ensure tables are registered before create_all
import approvals.models.approval  # noqa: F401
import approvals.models.audit  # noqa: F401
import approvals.models.cart  # noqa: F401
from approvals.services.evidence import MemoryEvidenceStore
from approvals.services.notifications import RecordingNotifier


@pytest.fixture(scope='session', autouse=True)
def app_instance():
    os.environ['DATABASE_URL'] = 'sqlite+pysqlite:///:memory:'
    app = create_app({
        'NOTIFIER': RecordingNotifier(),
        'EVIDENCE_STORE': MemoryEvidenceStore(),
        'EVIDENCE_MAX_BYTES': 1024,
    })
    # After app and blueprints are registered, ensure all tables exist
    with app.app_context():
        engine = get_db().get_bind()
        Base.metadata.create_all(engine)
    yield app


@pytest.fixture()
def client(app_instance):
    return app_instance.test_client()


@pytest.fixture()
def app_ctx(app_instance):
    """App context for calling services directly (no client requests inside)."""
    with app_instance.app_context():
        yield app_instance
    get_db().rollback()


@pytest.fixture()
def notifier(app_instance):
    rec = app_instance.extensions['approvals.notifier']
    rec.events.clear()
    return rec
