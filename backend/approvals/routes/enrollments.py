from flask import Blueprint, request, g
from approvals.constants.permissions import ROLE_CANDIDATE, VIEW_ALL_APPLICATIONS
from approvals.decorators.auth import require_role, require_capability
from approvals.models.approval import EnrollmentRecord
from approvals.services import ledger
from approvals.services.evidence import store_evidence

enrollments_bp = Blueprint('enrollments', __name__)


def enrollment_json(e: EnrollmentRecord):
    return {
        'id': e.id,
        'request_id': e.request_id,
        'candidate_id': e.candidate_id,
        'course_id': e.course_id,
        'status': e.status,
        'payment_evidence_ref': e.payment_evidence_ref,
        'message': e.message,
        'applied_at': e.applied_at.isoformat() if e.applied_at else None,
        'responded_at': e.responded_at.isoformat() if e.responded_at else None,
    }


@enrollments_bp.get('/status/<course_id>')
@require_role(ROLE_CANDIDATE)
def enrollment_status(course_id: str):
    record = ledger.latest_record(g.principal.id, course_id)
    return {
        'course_id': course_id,
        'status': record.status if record else None,
        'request_id': record.request_id if record else None,
    }


@enrollments_bp.get('/mine')
@require_role(ROLE_CANDIDATE)
def my_enrollments():
    rows = ledger.list_for_candidate(g.principal.id)
    return {'data': [enrollment_json(e) for e in rows]}


@enrollments_bp.get('/stats')
@require_capability(VIEW_ALL_APPLICATIONS)
def enrollment_stats():
    return ledger.stats()


@enrollments_bp.post('/evidence')
@require_role(ROLE_CANDIDATE)
def upload_evidence():
    """Accepts a multipart `file` field or a raw request body."""
    upload = request.files.get('file')
    if upload is not None:
        blob, content_type = upload.read(), upload.mimetype
    else:
        blob, content_type = request.get_data(), request.mimetype
    ref = store_evidence(blob, content_type)
    return {'ref': ref}, 201
