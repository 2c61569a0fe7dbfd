from __future__ import annotations
"""Simple finite state machine utility for enforcing allowed status transitions.

Used by the approval workflow (pending -> accepted | rejected, both terminal).
Usage:
    from approvals.utils.fsm import TransitionValidator
    REQUEST_FSM = TransitionValidator({
        'pending': {'accepted', 'rejected'},
        'accepted': set(),
        'rejected': set(),
    })
    REQUEST_FSM.assert_can_transition(current_status, target_status)

Raises ValidationError if invalid.
"""
from typing import Dict, Set

from approvals.errors import ValidationError


class TransitionValidator:
    def __init__(self, graph: Dict[str, Set[str]], field_name: str = 'status'):
        self.graph = graph
        self.field_name = field_name

    def can_transition(self, current: str, target: str) -> bool:
        return target in self.graph.get(current, set())

    def sources_for(self, target: str) -> Set[str]:
        """States from which `target` is reachable in one step (compare-and-swap guard)."""
        return {state for state, targets in self.graph.items() if target in targets}

    def assert_can_transition(self, current: str, target: str):
        if not self.can_transition(current, target):
            raise ValidationError(f"Invalid {self.field_name} transition {current} -> {target}")
        return True

__all__ = ['TransitionValidator']
