"""Request notifications.

The engine only emits events; delivering them (email, push) belongs to the
collaborator plugged in as `NOTIFIER`. Delivery is fire-and-forget: a failing
notifier is logged and never undoes a committed submission or decision.

Two event shapes:
  * DecisionEvent: a request was accepted or rejected (for the subject).
  * SubmissionEvent: a request was filed that existing managers should hear
    about; `recipient_ids` lists the active managers at submission time.
"""
from __future__ import annotations
from dataclasses import dataclass, asdict
import logging
from typing import List, Optional, Tuple, Union

from flask import current_app, has_app_context

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecisionEvent:
    request_id: int
    kind: str
    outcome: str
    subject_id: int

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class SubmissionEvent:
    request_id: int
    kind: str
    subject_id: int
    recipient_ids: Tuple[int, ...] = ()

    def to_dict(self):
        out = asdict(self)
        out['recipient_ids'] = list(self.recipient_ids)
        return out


Event = Union[DecisionEvent, SubmissionEvent]


class Notifier:
    def notify(self, event: Event) -> None:
        raise NotImplementedError


class LoggingNotifier(Notifier):
    def notify(self, event: Event) -> None:
        if isinstance(event, SubmissionEvent):
            logger.info('submission event request=%s kind=%s subject=%s recipients=%s',
                        event.request_id, event.kind, event.subject_id, list(event.recipient_ids))
            return
        logger.info('decision event request=%s kind=%s outcome=%s subject=%s',
                    event.request_id, event.kind, event.outcome, event.subject_id)


class RecordingNotifier(Notifier):
    """Keeps events in memory; handy for tests and local debugging."""

    def __init__(self):
        self.events: List[Event] = []

    def notify(self, event: Event) -> None:
        self.events.append(event)

    def of_type(self, event_type) -> List[Event]:
        return [e for e in self.events if isinstance(e, event_type)]


def get_notifier() -> Optional[Notifier]:
    if not has_app_context():
        return None
    return current_app.extensions.get('approvals.notifier')


def emit(event: Event, notifier: Optional[Notifier] = None) -> bool:
    """Hand the event to the notifier. Returns False when delivery failed."""
    target = notifier or get_notifier()
    if target is None:
        return False
    try:
        target.notify(event)
    except Exception:
        logger.exception('notification delivery failed for request %s', event.request_id)
        return False
    return True


__all__ = [
    'DecisionEvent', 'SubmissionEvent', 'Notifier', 'LoggingNotifier', 'RecordingNotifier',
    'get_notifier', 'emit',
]
