"""Manager permission value type.

A PermissionSet is an immutable snapshot of the capability flags a manager
holds plus the `full_access` master switch. While `full_access` is set every
capability reads as granted, whatever the stored flag says; writing any single
flag clears `full_access` so a partial downgrade never keeps the broader grant.

Persisted form (JSON column on the principal row):
    {"manage_courses": true, ..., "full_access": false}
"""
from __future__ import annotations
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

from approvals.constants.permissions import CAPABILITIES, FULL_ACCESS
from approvals.errors import InvalidCapability, ValidationError


def validate_capability(name: str) -> str:
    if name not in CAPABILITIES:
        raise InvalidCapability(name)
    return name


def _as_flag(name: str, value: Any) -> bool:
    # JSON "false" or 1 is rejected, never coerced
    if not isinstance(value, bool):
        raise ValidationError(f'{name} must be true or false')
    return value


@dataclass(frozen=True)
class PermissionSet:
    flags: Mapping[str, bool] = field(default_factory=dict)
    full_access: bool = False

    def __post_init__(self):
        clean = {}
        for name, value in dict(self.flags).items():
            clean[validate_capability(name)] = _as_flag(name, value)
        object.__setattr__(self, 'flags', MappingProxyType(clean))
        object.__setattr__(self, 'full_access', _as_flag(FULL_ACCESS, self.full_access))

    # --- constructors ---
    @classmethod
    def none(cls) -> 'PermissionSet':
        return cls()

    @classmethod
    def full(cls) -> 'PermissionSet':
        return cls(full_access=True)

    @classmethod
    def of(cls, *capabilities: str) -> 'PermissionSet':
        return cls({c: True for c in capabilities})

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> 'PermissionSet':
        """Build from a permission document; unknown keys raise InvalidCapability."""
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise ValidationError('permissions must be an object of capability -> bool')
        flags = {k: v for k, v in data.items() if k != FULL_ACCESS}
        return cls(flags, data.get(FULL_ACCESS, False))

    # --- reads ---
    def has(self, name: str) -> bool:
        validate_capability(name)
        if self.full_access:
            return True
        return self.flags.get(name, False)

    def granted(self) -> List[str]:
        """Effective capabilities in vocabulary order."""
        return [c for c in CAPABILITIES if self.has(c)]

    # --- transformations ---
    def grant_full_access(self) -> 'PermissionSet':
        return replace(self, full_access=True)

    def set_flag(self, name: str, value: bool) -> 'PermissionSet':
        validate_capability(name)
        flags = dict(self.flags)
        flags[name] = _as_flag(name, value)
        return PermissionSet(flags, False)

    def to_dict(self) -> Dict[str, bool]:
        out = {c: self.flags.get(c, False) for c in CAPABILITIES}
        out[FULL_ACCESS] = self.full_access
        return out


__all__ = ['PermissionSet', 'validate_capability']
