"""Auth and request helpers shared by the HTTP-level tests.

`jwt_headers` mints a token directly (needs an app context); `login_headers`
goes through /auth/login like a real client.
"""
from __future__ import annotations
from typing import Any, Dict, Optional
from flask_jwt_extended import create_access_token
from approvals.models.authz import User


def jwt_headers(user: User):
    token = create_access_token(identity=str(user.id), additional_claims={'role': user.role})
    return {'Authorization': f'Bearer {token}'}


def login_headers(client, email: str, password: str = 'pw'):
    resp = client.post('/auth/login', json={'email': email, 'password': password})
    assert resp.status_code == 200, resp.get_json()
    return {'Authorization': f"Bearer {resp.get_json()['access_token']}"}


def submit_via_api(client, headers, kind: str, payload: Optional[Dict[str, Any]] = None, expected: int = 201):
    resp = client.post('/requests', json={'kind': kind, 'payload': payload or {}}, headers=headers)
    assert resp.status_code == expected, resp.get_json()
    return resp.get_json()


def decide_via_api(client, headers, request_id: int, outcome: str, expected: int = 200, **extra):
    resp = client.post(f'/requests/{request_id}/decide', json={'outcome': outcome, **extra}, headers=headers)
    assert resp.status_code == expected, resp.get_json()
    return resp.get_json()


__all__ = ['jwt_headers', 'login_headers', 'submit_via_api', 'decide_via_api']
