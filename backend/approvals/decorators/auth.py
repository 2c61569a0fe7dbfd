from functools import wraps
from flask import g
from flask_jwt_extended import verify_jwt_in_request
from approvals.errors import Unauthorized
from approvals.services.access import require_any, require_full_access as has_full_access, describe_denial
from approvals.services.permissions import validate_capability
from approvals.services.policy import current_principal


def _authenticate():
    verify_jwt_in_request()
    principal = current_principal()
    g.principal = principal
    return principal


def require_role(*roles: str):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            principal = _authenticate()
            if principal.role not in roles:
                raise Unauthorized(f"Access denied. {' or '.join(roles)} role required.")
            return fn(*args, **kwargs)
        return wrapper
    return outer


def require_capability(*capabilities: str):
    """Manager holding at least one of `capabilities` (full access implies all)."""
    for c in capabilities:
        validate_capability(c)

    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            principal = _authenticate()
            if not require_any(principal, capabilities):
                raise Unauthorized(describe_denial(principal, capabilities))
            return fn(*args, **kwargs)
        wrapper.required_capabilities = list(capabilities)
        return wrapper
    return outer


def require_full_access():
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            principal = _authenticate()
            if not has_full_access(principal):
                raise Unauthorized(describe_denial(principal, full_access=True))
            return fn(*args, **kwargs)
        wrapper.required_capabilities = ['full_access']
        return wrapper
    return outer


def require_login():
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            _authenticate()
            return fn(*args, **kwargs)
        return wrapper
    return outer
