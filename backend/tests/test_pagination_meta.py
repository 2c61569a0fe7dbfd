from approvals.config.pagination import normalize_pagination, DEFAULT_LIMIT, MAX_LIMIT
from tests.test_utils_seed import ensure_candidate, course_id
from tests.test_lifecycle_helpers import login_headers, submit_via_api
import pytest


def test_normalize_pagination_clamps():
    assert normalize_pagination(None, None) == (DEFAULT_LIMIT, 0)
    assert normalize_pagination('1000', '-5') == (MAX_LIMIT, 0)
    assert normalize_pagination('0', '3') == (1, 3)
    with pytest.raises(ValueError):
        normalize_pagination('ten', None)


def test_own_requests_pagination(client):
    headers = login_headers(client, ensure_candidate().email)
    ids = [submit_via_api(client, headers, 'course_enrollment', {'course_id': course_id()})['id'] for _ in range(3)]
    page = client.get('/requests/mine?limit=2', headers=headers).get_json()
    assert page['pagination'] == {'total': 3, 'limit': 2, 'offset': 0, 'returned': 2}
    assert [r['id'] for r in page['data']] == [ids[2], ids[1]]
    rest = client.get('/requests/mine?limit=2&offset=2', headers=headers).get_json()
    assert [r['id'] for r in rest['data']] == [ids[0]]
    bad = client.get('/requests/mine?limit=abc', headers=headers)
    assert bad.status_code == 400
