"""Generic approval workflow shared by every request kind.

    pending --accept--> accepted   (kind effect runs in the same transaction)
    pending --reject--> rejected

A request is decided exactly once. The pending -> terminal move is a
compare-and-swap on `status`, so two racing reviewers cannot both win, and the
"one active enrollment per (candidate, course)" rule is backed by the partial
unique index on `enrollment_records`. Submission and decision each run as one
transaction; nothing is written when a check fails.
"""
from __future__ import annotations
from datetime import datetime, timezone
import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query

from approvals import get_db
from approvals.constants.permissions import (
    ALL_KINDS, ALL_STATUSES, ALL_OUTCOMES, OUTCOME_ACCEPT, OUTCOME_STATUS,
    STATUS_PENDING, STATUS_ACCEPTED, STATUS_REJECTED, KIND_COURSE_ENROLLMENT,
    ROLE_MANAGER,
)
from approvals.errors import (
    ApprovalsError, AlreadyDecided, DuplicateActiveEnrollment, EffectFailed, NotFound, Unauthorized,
)
from approvals.models.approval import ApprovalRequest
from approvals.models.authz import User
from approvals.services import effects
from approvals.services.audit import add_audit
from approvals.services.notifications import DecisionEvent, SubmissionEvent, emit
from approvals.services.permissions import PermissionSet
from approvals.services.policy import load_user, resolve_principal
from approvals.utils.fsm import TransitionValidator
from approvals.utils.validation import validate_choice, optional_choice

logger = logging.getLogger(__name__)

REQUEST_FSM = TransitionValidator(
    {
        STATUS_PENDING: {STATUS_ACCEPTED, STATUS_REJECTED},
        STATUS_ACCEPTED: set(),
        STATUS_REJECTED: set(),
    }
)


def submit(kind: str, subject_id: int, payload: Optional[Mapping[str, Any]] = None) -> ApprovalRequest:
    """Create a pending request for `subject_id`.

    Raises ValidationError for malformed payloads, NotFound for an unknown or
    inactive subject, DuplicateActiveEnrollment when a course enrollment is
    already pending or accepted for the same course.
    """
    validate_choice(kind, ALL_KINDS, 'kind')
    session = get_db()
    subject = load_user(subject_id)
    if subject is None:
        raise NotFound(f'Principal {subject_id} not found')
    handler = effects.handler_for(kind)
    clean = handler.normalize(subject, payload or {})

    request = ApprovalRequest(kind=kind, subject_id=subject.id, payload=clean, status=STATUS_PENDING)
    # savepoint: a refused submission leaves the rest of the session untouched
    try:
        with session.begin_nested():
            session.add(request)
            session.flush()
            handler.on_submit(session, request, subject)
            add_audit('REQUEST.SUBMIT', 'ApprovalRequest', request.id, {'kind': kind}, actor_id=subject.id)
    except IntegrityError:
        if kind == KIND_COURSE_ENROLLMENT:
            # lost the race against a concurrent submission for the same course
            raise DuplicateActiveEnrollment(subject.id, clean['course_id'])
        raise
    session.commit()
    logger.info('request %s submitted kind=%s subject=%s', request.id, kind, subject.id)

    if handler.announce_submission:
        emit(SubmissionEvent(request_id=request.id, kind=kind, subject_id=subject.id,
                             recipient_ids=_active_manager_ids(session)))
    return request


def _active_manager_ids(session) -> Tuple[int, ...]:
    rows = session.execute(
        select(User.id).where(User.role == ROLE_MANAGER, User.is_active.is_(True)).order_by(User.id)
    ).scalars()
    return tuple(rows)


def decide(
    request_id: int,
    reviewer_id: int,
    outcome: str,
    message: Optional[str] = None,
    permissions: Optional[Mapping[str, Any]] = None,
) -> ApprovalRequest:
    """Accept or reject a pending request on behalf of `reviewer_id`.

    `permissions` only applies to manager_account acceptance and is the whole
    grant; the applicant's requested scope is never applied. Failures leave the request untouched:
    NotFound, Unauthorized, AlreadyDecided, EffectFailed.
    """
    validate_choice(outcome, ALL_OUTCOMES, 'outcome')
    session = get_db()
    request = session.get(ApprovalRequest, request_id)
    if request is None:
        raise NotFound(f'Request {request_id} not found')
    reviewer = resolve_principal(reviewer_id)
    handler = effects.handler_for(request.kind)
    denial = handler.denial(reviewer, outcome)
    if denial:
        logger.info('decision denied request=%s reviewer=%s outcome=%s', request_id, reviewer_id, outcome)
        raise Unauthorized(denial)
    options: Dict[str, Any] = {}
    if permissions is not None:
        options['permissions'] = PermissionSet.from_dict(permissions)

    target = OUTCOME_STATUS[outcome]
    if not REQUEST_FSM.can_transition(request.status, target):
        raise AlreadyDecided(request_id, request.status)
    swapped = session.execute(
        update(ApprovalRequest)
        .where(ApprovalRequest.id == request_id, ApprovalRequest.status.in_(REQUEST_FSM.sources_for(target)))
        .values(status=target, reviewer_id=reviewer.id, decided_at=datetime.now(timezone.utc),
                decision_message=message or None)
        .execution_options(synchronize_session=False)
    )
    if swapped.rowcount != 1:
        session.rollback()
        session.refresh(request)
        raise AlreadyDecided(request_id, request.status)
    session.refresh(request)

    try:
        if outcome == OUTCOME_ACCEPT:
            handler.accept(session, request, reviewer, options)
        else:
            handler.on_reject(session, request)
        add_audit(
            'REQUEST.DECIDE', 'ApprovalRequest', request.id,
            {'kind': request.kind, 'outcome': outcome, 'subject_id': request.subject_id},
            actor_id=reviewer.id,
            perms=reviewer.permissions.granted() if reviewer.permissions else [],
        )
        session.flush()
    except Exception as exc:
        session.rollback()
        logger.exception('effect failed for request %s (%s)', request_id, request.kind)
        if isinstance(exc, EffectFailed):
            raise
        detail = exc.detail if isinstance(exc, ApprovalsError) else 'Could not apply the decision; please retry'
        raise EffectFailed(detail)
    session.commit()
    logger.info('request %s %s by reviewer %s', request.id, target, reviewer.id)

    emit(DecisionEvent(request_id=request.id, kind=request.kind, outcome=outcome, subject_id=request.subject_id))
    return request


def get_request(request_id: int) -> ApprovalRequest:
    request = get_db().get(ApprovalRequest, request_id)
    if request is None:
        raise NotFound(f'Request {request_id} not found')
    return request


def request_query(
    kind: Optional[str] = None,
    status: Optional[str] = None,
    subject_id: Optional[int] = None,
    kinds: Optional[List[str]] = None,
) -> Query:
    """Filtered query, newest first (created_at desc, id desc)."""
    kind = optional_choice(kind, ALL_KINDS, 'kind')
    status = optional_choice(status, ALL_STATUSES, 'status')
    q = get_db().query(ApprovalRequest)
    if kind:
        q = q.filter(ApprovalRequest.kind == kind)
    if kinds is not None:
        q = q.filter(ApprovalRequest.kind.in_(kinds))
    if status:
        q = q.filter(ApprovalRequest.status == status)
    if subject_id is not None:
        q = q.filter(ApprovalRequest.subject_id == subject_id)
    return q.order_by(ApprovalRequest.created_at.desc(), ApprovalRequest.id.desc())


def list_requests(kind: Optional[str] = None, status: Optional[str] = None, subject_id: Optional[int] = None) -> List[ApprovalRequest]:
    return request_query(kind, status, subject_id).all()


__all__ = ['submit', 'decide', 'get_request', 'request_query', 'list_requests', 'REQUEST_FSM']
