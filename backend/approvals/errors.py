"""Domain error taxonomy for the approval engine.

Every error carries the HTTP status and title the unified error handler in
`approvals.create_app` renders, so services can raise them without knowing
about Flask.
"""
from __future__ import annotations
from typing import Optional


class ApprovalsError(Exception):
    status = 400
    title = 'Bad Request'

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.title
        super().__init__(self.detail)

    def to_payload(self):
        return {
            'error': {
                'status': self.status,
                'title': self.title,
                'detail': self.detail,
            }
        }


class ValidationError(ApprovalsError):
    status = 400
    title = 'Bad Request'


class InvalidCapability(ValidationError):
    title = 'Invalid Capability'

    def __init__(self, name: str):
        self.capability = name
        super().__init__(f"Unknown capability '{name}'")


class Unauthorized(ApprovalsError):
    """Capability or role check failed (permission denied, not unauthenticated)."""
    status = 403
    title = 'Forbidden'


class NotFound(ApprovalsError):
    status = 404
    title = 'Not Found'


class DuplicateActiveEnrollment(ApprovalsError):
    status = 409
    title = 'Duplicate Active Enrollment'

    def __init__(self, candidate_id: int, course_id: str, existing_status: Optional[str] = None):
        self.candidate_id = candidate_id
        self.course_id = course_id
        self.existing_status = existing_status
        if existing_status == 'accepted':
            detail = f'You are already enrolled in course {course_id}'
        elif existing_status == 'pending':
            detail = f'You already have a pending enrollment request for course {course_id}'
        else:
            detail = f'An active enrollment request already exists for course {course_id}'
        super().__init__(detail)


class AlreadyDecided(ApprovalsError):
    status = 409
    title = 'Already Decided'

    def __init__(self, request_id: int, current_status: Optional[str] = None):
        self.request_id = request_id
        self.current_status = current_status
        suffix = f' ({current_status})' if current_status else ''
        super().__init__(f'Request {request_id} has already been processed{suffix}; refresh and try again')


class EffectFailed(ApprovalsError):
    status = 500
    title = 'Effect Failed'


__all__ = [
    'ApprovalsError', 'ValidationError', 'InvalidCapability', 'Unauthorized', 'NotFound',
    'DuplicateActiveEnrollment', 'AlreadyDecided', 'EffectFailed',
]
