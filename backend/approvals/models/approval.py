from __future__ import annotations
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, Text, ForeignKey, JSON, DateTime, Index, CheckConstraint, text, func
from typing import Optional, Dict, Any

from approvals.constants.permissions import (
    ALL_KINDS, ALL_STATUSES, ACTIVE_STATUSES, STATUS_PENDING,
)
from .authz import Base


def _in_list(column: str, values) -> str:
    return f"{column} IN ({', '.join(repr(v) for v in values)})"


class ApprovalRequest(Base):
    """One auditable request awaiting a binary decision. Never deleted."""
    __tablename__ = 'approval_requests'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    kind: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    subject_id: Mapped[int] = mapped_column(ForeignKey('users.id'), nullable=False, index=True)
    payload: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=STATUS_PENDING, index=True)
    reviewer_id: Mapped[Optional[int]] = mapped_column(ForeignKey('users.id'), nullable=True)
    decision_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), index=True)
    decided_at: Mapped[Optional[str]] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=text('CURRENT_TIMESTAMP'), server_onupdate=text('CURRENT_TIMESTAMP'))

    __table_args__ = (
        CheckConstraint(_in_list('kind', ALL_KINDS), name='ck_request_kind'),
        CheckConstraint(_in_list('status', ALL_STATUSES), name='ck_request_status'),
        # decided <=> reviewer and decision time recorded
        CheckConstraint(
            "(status = 'pending' AND reviewer_id IS NULL AND decided_at IS NULL)"
            " OR (status != 'pending' AND reviewer_id IS NOT NULL AND decided_at IS NOT NULL)",
            name='ck_request_decision_fields',
        ),
    )


class EnrollmentRecord(Base):
    """Materialized enrollment state, bound 1:1 to a course_enrollment request."""
    __tablename__ = 'enrollment_records'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    request_id: Mapped[int] = mapped_column(ForeignKey('approval_requests.id'), nullable=False, unique=True)
    candidate_id: Mapped[int] = mapped_column(ForeignKey('users.id'), nullable=False, index=True)
    course_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=STATUS_PENDING, index=True)
    payment_evidence_ref: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    applied_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now())
    responded_at: Mapped[Optional[str]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        # At most one pending/accepted record per (candidate, course)
        Index(
            'uq_enrollment_active', 'candidate_id', 'course_id',
            unique=True,
            sqlite_where=text(_in_list('status', ACTIVE_STATUSES)),
            postgresql_where=text(_in_list('status', ACTIVE_STATUSES)),
        ),
    )
