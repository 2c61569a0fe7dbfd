from flask import Blueprint, request, g
from approvals.constants.permissions import (
    ACCOUNT_KINDS, ALL_KINDS, KIND_COURSE_ENROLLMENT, ROLE_CANDIDATE,
    VIEW_ALL_APPLICATIONS, APPROVE_APPLICATIONS, REJECT_APPLICATIONS,
)
from approvals.decorators.auth import require_login, require_role
from approvals.errors import Unauthorized, ValidationError
from approvals.models.approval import ApprovalRequest
from approvals.services import workflow
from approvals.services.access import Principal, require_any, require_full_access, describe_denial
from approvals.utils.listing import cached_list
from approvals.utils.validation import validate_choice, optional_choice

requests_bp = Blueprint('requests', __name__)

REVIEW_CAPABILITIES = [VIEW_ALL_APPLICATIONS, APPROVE_APPLICATIONS, REJECT_APPLICATIONS]


def request_json(r: ApprovalRequest):
    return {
        'id': r.id,
        'kind': r.kind,
        'subject_id': r.subject_id,
        'payload': r.payload or {},
        'status': r.status,
        'reviewer_id': r.reviewer_id,
        'decision_message': r.decision_message,
        'created_at': r.created_at.isoformat() if r.created_at else None,
        'decided_at': r.decided_at.isoformat() if r.decided_at else None,
    }


def reviewable_kinds(principal: Principal):
    """Kinds this principal may review; account kinds need full access."""
    if require_full_access(principal):
        return list(ALL_KINDS)
    if require_any(principal, REVIEW_CAPABILITIES):
        return [KIND_COURSE_ENROLLMENT]
    return []


@requests_bp.post('')
@require_role(ROLE_CANDIDATE)
def submit_request():
    """Submit on behalf of the caller; the subject is always the authenticated candidate."""
    data = request.json or {}
    kind = validate_choice(data.get('kind'), ALL_KINDS, 'kind')
    payload = data.get('payload') or {}
    if not isinstance(payload, dict):
        raise ValidationError('payload must be an object')
    req = workflow.submit(kind, g.principal.id, payload)
    return request_json(req), 201


@requests_bp.get('')
@require_login()
def list_requests():
    principal = g.principal
    kinds = reviewable_kinds(principal)
    if not kinds:
        raise Unauthorized(describe_denial(principal, REVIEW_CAPABILITIES))
    kind = optional_choice(request.args.get('kind'), ALL_KINDS, 'kind')
    if kind and kind not in kinds:
        raise Unauthorized(describe_denial(principal, full_access=kind in ACCOUNT_KINDS))
    q = workflow.request_query(kind=kind, status=request.args.get('status'), kinds=kinds)
    return cached_list(q, request_json)


@requests_bp.get('/mine')
@require_login()
def my_requests():
    q = workflow.request_query(
        kind=request.args.get('kind'), status=request.args.get('status'), subject_id=g.principal.id,
    )
    return cached_list(q, request_json)


@requests_bp.get('/<int:request_id>')
@require_login()
def get_request(request_id: int):
    req = workflow.get_request(request_id)
    principal = g.principal
    if req.subject_id != principal.id and req.kind not in reviewable_kinds(principal):
        raise Unauthorized(describe_denial(principal, REVIEW_CAPABILITIES, full_access=req.kind in ACCOUNT_KINDS))
    return request_json(req)


@requests_bp.post('/<int:request_id>/decide')
@require_login()
def decide_request(request_id: int):
    data = request.json or {}
    req = workflow.decide(
        request_id,
        g.principal.id,
        data.get('outcome'),
        message=data.get('message'),
        permissions=data.get('permissions'),
    )
    return request_json(req)
