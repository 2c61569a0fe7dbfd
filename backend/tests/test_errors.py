import pytest
from approvals.errors import (
    AlreadyDecided, DuplicateActiveEnrollment, EffectFailed, InvalidCapability, NotFound, Unauthorized, ValidationError,
)
from tests.test_utils_seed import ensure_manager
from tests.test_lifecycle_helpers import login_headers


def test_unknown_path_returns_error_json(client):
    resp = client.get('/non-existent-path')
    # Flask default 404 should be wrapped by error handler
    assert resp.status_code == 404
    body = resp.get_json()
    assert body['error']['status'] == 404
    assert 'detail' in body['error']


def test_internal_error_shape(client, monkeypatch):
    headers = login_headers(client, ensure_manager(full_access=True).email)
    import approvals.routes.audit as audit_mod

    def boom_get_db():
        raise RuntimeError('explode')

    monkeypatch.setattr(audit_mod, 'get_db', boom_get_db)
    resp = client.get('/audit/logs', headers=headers)
    assert resp.status_code == 500
    body = resp.get_json()
    assert body['error']['status'] == 500
    assert body['error']['title'] == 'Internal Server Error'
    assert 'explode' not in body['error']['detail']


@pytest.mark.parametrize('exc, status, title', [
    (ValidationError('bad'), 400, 'Bad Request'),
    (InvalidCapability('fly'), 400, 'Invalid Capability'),
    (Unauthorized('no'), 403, 'Forbidden'),
    (NotFound('gone'), 404, 'Not Found'),
    (DuplicateActiveEnrollment(1, 'c-1', 'accepted'), 409, 'Duplicate Active Enrollment'),
    (AlreadyDecided(7, 'rejected'), 409, 'Already Decided'),
    (EffectFailed('nope'), 500, 'Effect Failed'),
])
def test_domain_errors_render_unified_payload(exc, status, title):
    payload = exc.to_payload()
    assert payload['error']['status'] == status
    assert payload['error']['title'] == title
    assert payload['error']['detail'] == exc.detail


def test_already_decided_message_suggests_refresh():
    assert 'refresh' in AlreadyDecided(3, 'accepted').detail
    assert 'already enrolled' in DuplicateActiveEnrollment(1, 'c-9', 'accepted').detail


def test_healthz(client):
    assert client.get('/healthz').get_json() == {'status': 'ok'}
