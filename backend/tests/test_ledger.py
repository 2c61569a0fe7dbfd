import pytest
from sqlalchemy import inspect
from approvals import get_db
from approvals.constants.permissions import APPROVE_APPLICATIONS, REJECT_APPLICATIONS, KIND_COURSE_ENROLLMENT
from approvals.errors import ValidationError
from approvals.models.approval import ApprovalRequest
from approvals.services import ledger, workflow
from approvals.services.evidence import store_evidence
from tests.test_utils_seed import ensure_candidate, ensure_manager, course_id, unique


def test_scenario_add_twice_then_checkout(app_ctx):
    c = ensure_candidate(); course = course_id()
    first = ledger.add_to_cart(c.id, course, 'course')
    again = ledger.add_to_cart(c.id, course, 'course')
    assert first.id == again.id
    assert [i.item_id for i in ledger.get_cart(c.id)] == [course]
    results = ledger.checkout(c.id)
    assert [r.outcome for r in results] == [ledger.SUBMITTED]
    req = get_db().get(ApprovalRequest, results[0].request_id)
    assert req.kind == KIND_COURSE_ENROLLMENT and req.status == 'pending'
    assert req.payload['payment_evidence_ref'] is None
    assert ledger.status_for(c.id, course) == 'pending'
    assert ledger.get_cart(c.id) == []


def test_cart_operations_are_idempotent(app_ctx):
    c = ensure_candidate()
    assert ledger.get_cart(c.id) == []
    assert ledger.clear_cart(c.id) == 0
    assert ledger.remove_from_cart(c.id, 999999) is False
    item = ledger.add_to_cart(c.id, unique('intern'), 'internship')
    assert ledger.remove_from_cart(c.id, item.id) is True
    assert ledger.remove_from_cart(c.id, item.id) is False
    ledger.add_to_cart(c.id, course_id(), 'course')
    ledger.add_to_cart(c.id, course_id(), 'course')
    assert ledger.clear_cart(c.id) == 2
    assert ledger.clear_cart(c.id) == 0


def test_cart_rejects_bad_items(app_ctx):
    c = ensure_candidate()
    with pytest.raises(ValidationError):
        ledger.add_to_cart(c.id, course_id(), 'bootcamp')
    with pytest.raises(ValidationError):
        ledger.add_to_cart(c.id, '', 'course')


def test_cart_items_are_private_to_candidate(app_ctx):
    owner = ensure_candidate(); intruder = ensure_candidate()
    item = ledger.add_to_cart(owner.id, course_id(), 'course')
    assert ledger.remove_from_cart(intruder.id, item.id) is False
    assert [i.id for i in ledger.get_cart(owner.id)] == [item.id]


def test_checkout_reports_each_item(app_ctx):
    c = ensure_candidate()
    taken, fresh, internship = course_id(), course_id(), unique('intern')
    workflow.submit(KIND_COURSE_ENROLLMENT, c.id, {'course_id': taken})
    dup_id = ledger.add_to_cart(c.id, taken, 'course').id
    fresh_id = ledger.add_to_cart(c.id, fresh, 'course').id
    intern_item = ledger.add_to_cart(c.id, internship, 'internship')
    intern_id = intern_item.id
    ref = store_evidence(b'bank transfer receipt')
    results = {r.cart_item_id: r for r in ledger.checkout(c.id, evidence_ref=ref)}
    assert results[dup_id].outcome == ledger.DUPLICATE
    assert results[fresh_id].outcome == ledger.SUBMITTED
    assert results[intern_id].outcome == ledger.SKIPPED
    # the refused duplicate did not expire objects the caller holds
    assert not inspect(intern_item).expired_attributes
    fresh_req = get_db().get(ApprovalRequest, results[fresh_id].request_id)
    assert fresh_req.payload['payment_evidence_ref'] == ref
    # only the submitted item leaves the cart
    assert sorted(i.id for i in ledger.get_cart(c.id)) == sorted([dup_id, intern_id])


def test_checkout_subset_and_unknown_ids(app_ctx):
    c = ensure_candidate()
    a = ledger.add_to_cart(c.id, course_id(), 'course')
    b = ledger.add_to_cart(c.id, course_id(), 'course')
    results = ledger.checkout(c.id, items=[b.id, 123456789])
    assert [(r.cart_item_id, r.outcome) for r in results] == [(b.id, ledger.SUBMITTED), (123456789, ledger.NOT_IN_CART)]
    assert [i.id for i in ledger.get_cart(c.id)] == [a.id]
    with pytest.raises(ValidationError):
        ledger.checkout(c.id, evidence_ref='')
    with pytest.raises(ValidationError):
        ledger.checkout(c.id, evidence_ref='evidence:not-uploaded')
    assert [i.id for i in ledger.get_cart(c.id)] == [a.id]


def test_acceptance_removes_course_from_cart(app_ctx):
    reviewer = ensure_manager(APPROVE_APPLICATIONS)
    c = ensure_candidate(); course = course_id()
    req = workflow.submit(KIND_COURSE_ENROLLMENT, c.id, {'course_id': course})
    ledger.add_to_cart(c.id, course, 'course')
    workflow.decide(req.id, reviewer.id, 'accept')
    assert ledger.get_cart(c.id) == []


def test_history_and_stats(app_ctx):
    reviewer = ensure_manager(APPROVE_APPLICATIONS, REJECT_APPLICATIONS)
    before = ledger.stats()
    c = ensure_candidate()
    courses = [course_id() for _ in range(3)]
    reqs = [workflow.submit(KIND_COURSE_ENROLLMENT, c.id, {'course_id': x}) for x in courses]
    workflow.decide(reqs[0].id, reviewer.id, 'accept')
    workflow.decide(reqs[1].id, reviewer.id, 'reject')
    after = ledger.stats()
    assert after['accepted'] - before['accepted'] == 1
    assert after['rejected'] - before['rejected'] == 1
    assert after['pending'] - before['pending'] == 1
    assert after['total'] - before['total'] == 3
    history = ledger.list_for_candidate(c.id)
    assert [h.course_id for h in history] == list(reversed(courses))
    assert ledger.status_for(c.id, course_id()) is None
