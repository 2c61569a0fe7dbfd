"""Access decisions for principals.

Pure predicates: they answer allow/deny and never raise for a denial.
Callers (route guards, the approval workflow) turn a False into
`approvals.errors.Unauthorized`, using `describe_denial` for the message.
Unknown capability names are programming errors and raise InvalidCapability.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, Optional

from approvals.constants.permissions import ROLE_MANAGER, CAPABILITY_DESCRIPTIONS
from approvals.services.permissions import PermissionSet, validate_capability


@dataclass(frozen=True)
class Principal:
    """Resolved actor handed over by the identity layer."""
    id: int
    role: str
    permissions: Optional[PermissionSet] = None

    @property
    def is_manager(self) -> bool:
        return self.role == ROLE_MANAGER


def can_act(principal: Principal, capability: str) -> bool:
    validate_capability(capability)
    if principal.role != ROLE_MANAGER or principal.permissions is None:
        return False
    return principal.permissions.has(capability)


def require_full_access(principal: Principal) -> bool:
    return bool(
        principal.role == ROLE_MANAGER
        and principal.permissions is not None
        and principal.permissions.full_access
    )


def require_any(principal: Principal, capabilities: Iterable[str]) -> bool:
    caps = [validate_capability(c) for c in capabilities]
    return any(can_act(principal, c) for c in caps)


def describe_denial(principal: Principal, capabilities: Iterable[str] = (), full_access: bool = False) -> str:
    """Actionable permission-denied message naming the missing role or capability."""
    if principal.role != ROLE_MANAGER:
        return 'Access denied. Manager role required.'
    if full_access:
        return 'Access denied. Full access is required for this action.'
    labels = [CAPABILITY_DESCRIPTIONS.get(c, c) for c in capabilities]
    if not labels:
        return 'Access denied.'
    if len(labels) == 1:
        return f"Access denied. You don't have permission to {labels[0]}."
    return "Access denied. You need permission to " + ' or '.join(labels) + '.'


__all__ = ['Principal', 'can_act', 'require_full_access', 'require_any', 'describe_denial']
