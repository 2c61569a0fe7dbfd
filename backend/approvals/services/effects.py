"""Per-kind behaviour plugged into the approval workflow.

Each request kind registers one handler that knows how to
  * normalize the submitted payload,
  * prepare companion rows at submission time,
  * decide who may accept or reject it,
  * apply the acceptance effect (inside the decision transaction),
  * mirror a rejection onto companion rows.

Handlers never commit; the workflow owns the transaction boundary so a failing
effect leaves the request pending.
"""
from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from sqlalchemy import select, update

from approvals.constants.permissions import (
    KIND_MANAGER_ACCOUNT, KIND_COURSE_ENROLLMENT, KIND_SERVICE_PROVIDER_ACCOUNT,
    ROLE_CANDIDATE, ROLE_MANAGER, ROLE_SERVICE_PROVIDER, CAPABILITIES,
    APPROVE_APPLICATIONS, REJECT_APPLICATIONS, OUTCOME_ACCEPT,
    STATUS_ACCEPTED, STATUS_REJECTED, STATUS_PENDING, ACTIVE_STATUSES,
    ITEM_COURSE, PROVIDER_PROFILE_FIELDS,
)
from approvals.errors import DuplicateActiveEnrollment, EffectFailed, ValidationError
from approvals.models.approval import ApprovalRequest, EnrollmentRecord
from approvals.models.authz import User
from approvals.services import cart as cart_service
from approvals.services.access import Principal, can_act, require_full_access, describe_denial
from approvals.services.evidence import require_evidence
from approvals.services.permissions import PermissionSet
from approvals.utils.validation import coerce_int

EFFECTS: Dict[str, 'KindHandler'] = {}


def register(handler_cls):
    EFFECTS[handler_cls.kind] = handler_cls()
    return handler_cls


def handler_for(kind: str) -> 'KindHandler':
    return EFFECTS[kind]


def _now():
    return datetime.now(timezone.utc)


class KindHandler:
    kind: str = ''
    # emit a SubmissionEvent to active managers when a request is filed
    announce_submission: bool = False

    def normalize(self, subject: User, payload: Mapping[str, Any]) -> Dict[str, Any]:
        return dict(payload)

    def on_submit(self, session, request: ApprovalRequest, subject: User) -> None:
        pass

    def denial(self, reviewer: Principal, outcome: str) -> Optional[str]:
        """None when the reviewer may decide in this direction, else the denial message."""
        if require_full_access(reviewer):
            return None
        return describe_denial(reviewer, full_access=True)

    def accept(self, session, request: ApprovalRequest, reviewer: Principal, options: Dict[str, Any]) -> None:
        raise NotImplementedError

    def on_reject(self, session, request: ApprovalRequest) -> None:
        pass


class _AccountHandler(KindHandler):
    """Shared promotion logic: a new principal row with the target role, linked to the applicant."""
    target_role: str = ''

    def normalize(self, subject, payload):
        if subject.role == self.target_role:
            raise ValidationError(f'Account already has the {self.target_role} role')
        note = payload.get('note')
        out: Dict[str, Any] = {}
        if note:
            out['note'] = str(note)
        return out

    def _promote(self, session, request: ApprovalRequest, **fields) -> User:
        subject = session.get(User, request.subject_id)
        if subject is None or not subject.is_active:
            raise EffectFailed('Applicant account is no longer active')
        clash = session.execute(
            select(User.id).where(
                User.email == subject.email,
                User.role == self.target_role,
                User.is_active.is_(True),
            )
        ).first()
        if clash:
            raise EffectFailed(f'A {self.target_role} account already exists for {subject.email}')
        principal = User(
            name=subject.name,
            email=subject.email,
            phone=fields.pop('phone', None) or subject.phone,
            password_hash=subject.password_hash,
            role=self.target_role,
            promoted_from_id=subject.id,
            **fields,
        )
        session.add(principal)
        subject.is_active = False
        session.flush()
        return principal


@register
class ManagerAccountHandler(_AccountHandler):
    kind = KIND_MANAGER_ACCOUNT
    target_role = ROLE_MANAGER
    announce_submission = True

    def normalize(self, subject, payload):
        out = super().normalize(subject, payload)
        requested = payload.get('requested_permissions', payload.get('permissions'))
        if requested is not None:
            # informational; full_access is never requestable
            if isinstance(requested, (list, tuple)):
                wanted = PermissionSet.of(*requested)
            else:
                wanted = PermissionSet.from_dict(requested)
            out['requested_permissions'] = [c for c in CAPABILITIES if wanted.flags.get(c)]
        return out

    def accept(self, session, request, reviewer, options):
        # only the reviewer grants; no permissions means a manager with none
        granted = options.get('permissions')
        if granted is None:
            granted = PermissionSet.none()
        principal = self._promote(session, request, permissions=granted.to_dict())
        request.payload = {**request.payload, 'permissions': granted.to_dict(), 'principal_id': principal.id}


@register
class ServiceProviderAccountHandler(_AccountHandler):
    kind = KIND_SERVICE_PROVIDER_ACCOUNT
    target_role = ROLE_SERVICE_PROVIDER

    def normalize(self, subject, payload):
        out = super().normalize(subject, payload)
        profile = payload.get('profile') or {}
        if not isinstance(profile, Mapping):
            raise ValidationError('profile must be an object')
        unknown = set(profile) - set(PROVIDER_PROFILE_FIELDS)
        if unknown:
            raise ValidationError(f'Unknown profile fields: {sorted(unknown)}')
        clean = {k: profile[k] for k in PROVIDER_PROFILE_FIELDS if profile.get(k) not in (None, '')}
        if 'experience' in clean:
            clean['experience'] = coerce_int(clean['experience'], 'profile.experience')
        out['profile'] = clean
        return out

    def accept(self, session, request, reviewer, options):
        profile = dict(request.payload.get('profile') or {})
        principal = self._promote(session, request, phone=profile.get('phone'), profile=profile)
        request.payload = {**request.payload, 'principal_id': principal.id}


@register
class CourseEnrollmentHandler(KindHandler):
    kind = KIND_COURSE_ENROLLMENT

    def normalize(self, subject, payload):
        if subject.role != ROLE_CANDIDATE:
            raise ValidationError('Only candidates can request course enrollment')
        course_id = payload.get('course_id')
        if course_id in (None, ''):
            raise ValidationError('course_id required')
        out: Dict[str, Any] = {'course_id': str(course_id), 'payment_evidence_ref': None}
        evidence = payload.get('payment_evidence_ref')
        if evidence is not None:
            out['payment_evidence_ref'] = require_evidence(evidence)
        if payload.get('message'):
            out['message'] = str(payload['message'])
        if payload.get('cart_item_id') is not None:
            out['cart_item_id'] = coerce_int(payload['cart_item_id'], 'cart_item_id')
        return out

    def on_submit(self, session, request, subject):
        payload = request.payload
        active = active_enrollment(session, subject.id, payload['course_id'])
        if active is not None:
            raise DuplicateActiveEnrollment(subject.id, payload['course_id'], active.status)
        session.add(EnrollmentRecord(
            request_id=request.id,
            candidate_id=subject.id,
            course_id=payload['course_id'],
            status=STATUS_PENDING,
            payment_evidence_ref=payload.get('payment_evidence_ref'),
            message=payload.get('message'),
        ))
        if payload.get('cart_item_id') is not None:
            cart_service.discard_item(session, subject.id, payload['cart_item_id'])

    def denial(self, reviewer, outcome):
        capability = APPROVE_APPLICATIONS if outcome == OUTCOME_ACCEPT else REJECT_APPLICATIONS
        if can_act(reviewer, capability):
            return None
        return describe_denial(reviewer, [capability])

    def _mirror(self, session, request, status):
        result = session.execute(
            update(EnrollmentRecord)
            .where(EnrollmentRecord.request_id == request.id)
            .values(status=status, responded_at=_now())
        )
        return result.rowcount

    def accept(self, session, request, reviewer, options):
        if not self._mirror(session, request, STATUS_ACCEPTED):
            raise EffectFailed(f'Enrollment record for request {request.id} is missing')
        cart_service.discard_matching(session, request.subject_id, request.payload['course_id'], ITEM_COURSE)

    def on_reject(self, session, request):
        self._mirror(session, request, STATUS_REJECTED)


def active_enrollment(session, candidate_id: int, course_id: str) -> Optional[EnrollmentRecord]:
    return session.execute(
        select(EnrollmentRecord).where(
            EnrollmentRecord.candidate_id == candidate_id,
            EnrollmentRecord.course_id == str(course_id),
            EnrollmentRecord.status.in_(ACTIVE_STATUSES),
        )
    ).scalars().first()


__all__ = ['EFFECTS', 'KindHandler', 'register', 'handler_for', 'active_enrollment']
