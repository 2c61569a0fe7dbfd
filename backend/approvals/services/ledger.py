"""Enrollment ledger: the candidate-facing side of course enrollment.

Cart operations, checkout (cart -> course_enrollment requests) and the
read-only views the dashboards poll. Checkout is best-effort across the
basket: each course item is submitted on its own and reported individually.
"""
from __future__ import annotations
from dataclasses import dataclass, asdict
import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select, func

from approvals import get_db
from approvals.constants.permissions import (
    ALL_ITEM_TYPES, ALL_STATUSES, ITEM_COURSE, KIND_COURSE_ENROLLMENT,
)
from approvals.errors import DuplicateActiveEnrollment, ValidationError
from approvals.models.approval import EnrollmentRecord
from approvals.models.cart import CartItem
from approvals.services import cart as cart_service
from approvals.services import workflow
from approvals.services.evidence import require_evidence
from approvals.utils.validation import validate_choice, coerce_int

logger = logging.getLogger(__name__)

# Per-item checkout outcomes
SUBMITTED = 'submitted'
DUPLICATE = 'duplicate'
SKIPPED = 'skipped'
NOT_IN_CART = 'not_in_cart'


@dataclass
class CheckoutResult:
    cart_item_id: Optional[int]
    item_id: Optional[str]
    item_type: Optional[str]
    outcome: str
    request_id: Optional[int] = None
    detail: Optional[str] = None

    def to_dict(self):
        return asdict(self)


def add_to_cart(candidate_id: int, item_id: str, item_type: str) -> CartItem:
    if item_id in (None, ''):
        raise ValidationError('item_id required')
    validate_choice(item_type, ALL_ITEM_TYPES, 'item_type')
    item, _created = cart_service.add_item(candidate_id, str(item_id), item_type)
    return item


def remove_from_cart(candidate_id: int, cart_item_id: int) -> bool:
    return cart_service.remove_item(candidate_id, cart_item_id)


def clear_cart(candidate_id: int) -> int:
    return cart_service.clear(candidate_id)


def get_cart(candidate_id: int) -> List[CartItem]:
    return cart_service.list_items(candidate_id)


def checkout(candidate_id: int, items: Optional[Iterable[int]] = None, evidence_ref: Optional[str] = None) -> List[CheckoutResult]:
    """Submit one course_enrollment request per course item.

    `items` selects cart item ids; None means the whole cart. Internship items
    are skipped and stay in the cart. Submitted items leave the cart in the
    same transaction as their request.
    """
    cart_items = {ci.id: (ci.item_id, ci.item_type) for ci in cart_service.list_items(candidate_id)}
    if evidence_ref is not None:
        require_evidence(evidence_ref)
    wanted = list(cart_items) if items is None else [coerce_int(i, 'items') for i in items]
    results: List[CheckoutResult] = []
    for cart_item_id in wanted:
        if cart_item_id not in cart_items:
            results.append(CheckoutResult(cart_item_id, None, None, NOT_IN_CART, detail='Item is not in the cart'))
            continue
        item_id, item_type = cart_items[cart_item_id]
        if item_type != ITEM_COURSE:
            results.append(CheckoutResult(cart_item_id, item_id, item_type, SKIPPED,
                                          detail=f'{item_type} items are not enrolled through checkout'))
            continue
        payload = {'course_id': item_id, 'payment_evidence_ref': evidence_ref, 'cart_item_id': cart_item_id}
        try:
            req = workflow.submit(KIND_COURSE_ENROLLMENT, candidate_id, payload)
        except DuplicateActiveEnrollment as e:
            results.append(CheckoutResult(cart_item_id, item_id, item_type, DUPLICATE, detail=e.detail))
            continue
        results.append(CheckoutResult(cart_item_id, item_id, item_type, SUBMITTED, request_id=req.id))
    logger.info('checkout candidate=%s submitted=%s of %s', candidate_id,
                sum(1 for r in results if r.outcome == SUBMITTED), len(results))
    return results


def latest_record(candidate_id: int, course_id: str) -> Optional[EnrollmentRecord]:
    return get_db().execute(
        select(EnrollmentRecord)
        .where(EnrollmentRecord.candidate_id == candidate_id, EnrollmentRecord.course_id == str(course_id))
        .order_by(EnrollmentRecord.applied_at.desc(), EnrollmentRecord.id.desc())
        .limit(1)
    ).scalar_one_or_none()


def status_for(candidate_id: int, course_id: str) -> Optional[str]:
    """Status of the newest enrollment record for the pair, or None if never applied."""
    record = latest_record(candidate_id, course_id)
    return record.status if record else None


def list_for_candidate(candidate_id: int) -> List[EnrollmentRecord]:
    return list(get_db().execute(
        select(EnrollmentRecord)
        .where(EnrollmentRecord.candidate_id == candidate_id)
        .order_by(EnrollmentRecord.applied_at.desc(), EnrollmentRecord.id.desc())
    ).scalars())


def stats() -> Dict[str, int]:
    counts = dict(get_db().execute(
        select(EnrollmentRecord.status, func.count(EnrollmentRecord.id)).group_by(EnrollmentRecord.status)
    ).all())
    out = {s: int(counts.get(s, 0)) for s in ALL_STATUSES}
    out['total'] = sum(out.values())
    return out


__all__ = [
    'CheckoutResult', 'add_to_cart', 'remove_from_cart', 'clear_cart', 'get_cart', 'checkout',
    'status_for', 'latest_record', 'list_for_candidate', 'stats',
    'SUBMITTED', 'DUPLICATE', 'SKIPPED', 'NOT_IN_CART',
]
