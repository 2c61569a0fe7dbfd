from approvals.constants.permissions import APPROVE_APPLICATIONS, VIEW_ALL_APPLICATIONS
from tests.test_utils_seed import ensure_candidate, ensure_manager, course_id, unique
from tests.test_lifecycle_helpers import login_headers, decide_via_api


def test_cart_endpoints_round_trip(client):
    headers = login_headers(client, ensure_candidate().email)
    course = course_id()
    first = client.post('/cart/items', json={'item_id': course, 'item_type': 'course'}, headers=headers)
    assert first.status_code == 201
    again = client.post('/cart/items', json={'item_id': course, 'item_type': 'course'}, headers=headers)
    assert again.get_json()['id'] == first.get_json()['id']
    client.post('/cart/items', json={'item_id': unique('intern'), 'item_type': 'internship'}, headers=headers)
    cart = client.get('/cart', headers=headers).get_json()
    assert cart['count'] == 2
    assert [i['item_type'] for i in cart['items']] == ['course', 'internship']
    removed = client.delete(f"/cart/items/{first.get_json()['id']}", headers=headers).get_json()
    assert removed == {'removed': True}
    assert client.delete(f"/cart/items/{first.get_json()['id']}", headers=headers).get_json() == {'removed': False}
    assert client.delete('/cart', headers=headers).get_json() == {'removed': 1}
    assert client.delete('/cart', headers=headers).get_json() == {'removed': 0}
    bad = client.post('/cart/items', json={'item_id': course, 'item_type': 'webinar'}, headers=headers)
    assert bad.status_code == 400


def test_cart_is_candidate_only(client):
    headers = login_headers(client, ensure_manager(VIEW_ALL_APPLICATIONS).email)
    resp = client.get('/cart', headers=headers)
    assert resp.status_code == 403
    assert 'candidate role required' in resp.get_json()['error']['detail']


def test_checkout_with_evidence_and_status(client):
    c = ensure_candidate()
    headers = login_headers(client, c.email)
    upload = client.post('/enrollments/evidence', data=b'receipt-bytes', headers={**headers, 'Content-Type': 'image/png'})
    assert upload.status_code == 201
    ref = upload.get_json()['ref']
    assert ref.startswith('evidence:')
    course = course_id()
    client.post('/cart/items', json={'item_id': course, 'item_type': 'course'}, headers=headers)
    intern = client.post('/cart/items', json={'item_id': unique('intern'), 'item_type': 'internship'}, headers=headers).get_json()
    body = client.post('/cart/checkout', json={'payment_evidence_ref': ref}, headers=headers).get_json()
    assert body['submitted'] == 1
    outcomes = {r['item_type']: r['outcome'] for r in body['results']}
    assert outcomes == {'course': 'submitted', 'internship': 'skipped'}
    assert [i['id'] for i in body['cart']['items']] == [intern['id']]

    status = client.get(f'/enrollments/status/{course}', headers=headers).get_json()
    assert status['status'] == 'pending'
    assert client.get(f'/enrollments/status/{course_id()}', headers=headers).get_json()['status'] is None
    history = client.get('/enrollments/mine', headers=headers).get_json()['data']
    assert history[0]['course_id'] == course
    assert history[0]['payment_evidence_ref'] == ref

    approver = ensure_manager(APPROVE_APPLICATIONS)
    request_id = next(r['request_id'] for r in body['results'] if r['outcome'] == 'submitted')
    decide_via_api(client, login_headers(client, approver.email), request_id, 'accept')
    assert client.get(f'/enrollments/status/{course}', headers=headers).get_json()['status'] == 'accepted'


def test_evidence_upload_limits(client):
    headers = login_headers(client, ensure_candidate().email)
    empty = client.post('/enrollments/evidence', data=b'', headers=headers)
    assert empty.status_code == 400
    too_big = client.post('/enrollments/evidence', data=b'x' * 2048, headers=headers)
    assert too_big.status_code == 400
    assert 'exceeds' in too_big.get_json()['error']['detail']


def test_enrollment_stats_require_view_capability(client):
    candidate_headers = login_headers(client, ensure_candidate().email)
    assert client.get('/enrollments/stats', headers=candidate_headers).status_code == 403
    viewer_headers = login_headers(client, ensure_manager(VIEW_ALL_APPLICATIONS).email)
    stats = client.get('/enrollments/stats', headers=viewer_headers).get_json()
    assert set(stats) == {'pending', 'accepted', 'rejected', 'total'}
    assert stats['total'] == stats['pending'] + stats['accepted'] + stats['rejected']
