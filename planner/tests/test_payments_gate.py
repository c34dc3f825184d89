"""
Payment gate: checkout, idempotent verification and the completed-file gate.
"""
from __future__ import annotations

import pytest

from planner.assignments.lifecycle import MAX_PRICE
from planner.errors import (
    AlreadyPaid,
    Forbidden,
    InvalidStateTransition,
    NotFound,
    PaymentRequired,
    UpstreamFailure,
    ValidationError,
)
from planner.identity_access.domain import AdminPrincipal, StudentPrincipal, TutorPrincipal

from utils.fakes import ADMIN_EMAIL, make_services, pdf_upload, seed_student, seed_tutor

ADMIN = AdminPrincipal(email=ADMIN_EMAIL)
SOLUTION = "https://files.example.com/solution.pdf"


@pytest.fixture
def world():
    svc = make_services()
    student = seed_student(svc)
    stranger = seed_student(svc, email="esi@ug.edu.gh", first_name="Esi")
    tutor = seed_tutor(svc)
    return svc, student, stranger, tutor


def _s(u):
    return StudentPrincipal(user_id=u.id, email=u.email)


def _t(u):
    return TutorPrincipal(user_id=u.id, email=u.email, specialty=u.program_specialty)


def _completed(svc, student, tutor, price=50):
    a = svc.lifecycle.submit(_s(student), title="Essay", description="d", specialty="Computer Science", file=pdf_upload())
    svc.lifecycle.assign_to_tutor(ADMIN, a.id, tutor.id)
    svc.lifecycle.review_and_price(_t(tutor), a.id, price)
    return svc.lifecycle.complete(_t(tutor), a.id, SOLUTION)


def test_initialize_sends_email_amount_and_metadata(world):
    svc, student, _, tutor = world
    a = _completed(svc, student, tutor, price=120)

    url = svc.payments.initialize(_s(student), a.id)

    assert url == "https://checkout.test/pay/1"
    assert svc.gateway.initialized == [
        {"email": student.email, "amount": 120.0, "metadata": {"assignmentId": a.id}}
    ]


def test_initialize_guards(world):
    svc, student, stranger, tutor = world
    a = _completed(svc, student, tutor)
    with pytest.raises(Forbidden):
        svc.payments.initialize(ADMIN, a.id)
    with pytest.raises(NotFound):
        svc.payments.initialize(_s(stranger), a.id)

    pending = svc.lifecycle.submit(_s(student), title="t", description="d", specialty="Computer Science", file=pdf_upload())
    with pytest.raises(InvalidStateTransition):
        svc.payments.initialize(_s(student), pending.id)

    svc.lifecycle.mark_paid(ADMIN, a.id)
    with pytest.raises(AlreadyPaid):
        svc.payments.initialize(_s(student), a.id)


def test_verify_success_marks_paid_once_and_emails_once(world):
    svc, student, _, tutor = world
    a = _completed(svc, student, tutor, price=50)
    svc.gateway.succeed("ref_123", assignment_id=a.id, amount_minor=5000)
    before = len(svc.notifier.to(student.email))

    paid, applied = svc.payments.verify(_s(student), "ref_123")
    again, applied_again = svc.payments.verify(_s(student), "ref_123")

    assert applied is True and applied_again is False
    assert paid.is_paid and paid.payment_reference == "ref_123"
    assert again == paid
    solution_mails = [m for m in svc.notifier.to(student.email)[before:] if m.subject == "Assignment Solution Available"]
    assert len(solution_mails) == 1


def test_verify_non_success_is_rejected(world):
    svc, student, _, tutor = world
    a = _completed(svc, student, tutor)
    svc.gateway.fail("ref_bad", assignment_id=a.id, status="abandoned")
    with pytest.raises(ValidationError) as exc:
        svc.payments.verify(_s(student), "ref_bad")
    assert exc.value.detail == "payment_not_successful"
    assert svc.assignments.get_assignment(a.id).is_paid is False


def test_verify_rejects_short_amount(world):
    svc, student, _, tutor = world
    a = _completed(svc, student, tutor, price=50)
    svc.gateway.succeed("ref_low", assignment_id=a.id, amount_minor=4999)
    with pytest.raises(ValidationError) as exc:
        svc.payments.verify(_s(student), "ref_low")
    assert exc.value.detail == "amount_mismatch"


def test_verify_by_foreign_student_is_forbidden(world):
    svc, student, stranger, tutor = world
    a = _completed(svc, student, tutor)
    svc.gateway.succeed("ref_x", assignment_id=a.id, amount_minor=5000)
    with pytest.raises(Forbidden):
        svc.payments.verify(_s(stranger), "ref_x")
    assert svc.assignments.get_assignment(a.id).is_paid is False


def test_verify_by_admin_is_allowed(world):
    svc, student, _, tutor = world
    a = _completed(svc, student, tutor)
    svc.gateway.succeed("ref_admin", assignment_id=a.id, amount_minor=5000)
    paid, applied = svc.payments.verify(ADMIN, "ref_admin")
    assert applied and paid.is_paid


@pytest.mark.parametrize("reference", [None, "", "../../etc", "a" * 101, "ref with space"])
def test_verify_rejects_malformed_reference(world, reference):
    svc, student, *_ = world
    with pytest.raises(ValidationError) as exc:
        svc.payments.verify(_s(student), reference)
    assert exc.value.detail == "invalid_reference"
    assert svc.gateway.verify_calls == []


def test_verify_unknown_reference_surfaces_upstream_failure(world):
    svc, student, *_ = world
    with pytest.raises(UpstreamFailure):
        svc.payments.verify(_s(student), "ref_unknown")


def test_completed_download_is_payment_gated(world):
    svc, student, stranger, tutor = world
    a = _completed(svc, student, tutor)

    with pytest.raises(PaymentRequired):
        svc.payments.completed_file_url(_s(student), a.id)
    with pytest.raises(NotFound):
        svc.payments.completed_file_url(_s(stranger), a.id)
    assert svc.payments.completed_file_url(ADMIN, a.id) == SOLUTION
    assert svc.payments.completed_file_url(_t(tutor), a.id) == SOLUTION

    svc.lifecycle.mark_paid(_s(student), a.id)
    assert svc.payments.completed_file_url(_s(student), a.id) == SOLUTION
    with pytest.raises(NotFound):
        svc.payments.completed_file_url(_s(stranger), a.id)


def test_completed_download_before_completion(world):
    svc, student, _, tutor = world
    a = svc.lifecycle.submit(_s(student), title="t", description="d", specialty="Computer Science", file=pdf_upload())
    with pytest.raises(PaymentRequired):
        svc.payments.completed_file_url(_s(student), a.id)
    with pytest.raises(NotFound):
        svc.payments.completed_file_url(ADMIN, a.id)


def test_verify_at_the_price_cap_converts_exactly(world):
    svc, student, _, tutor = world
    a = _completed(svc, student, tutor, price=MAX_PRICE)
    svc.gateway.succeed("ref_cap", assignment_id=a.id, amount_minor=MAX_PRICE * 100)
    paid, applied = svc.payments.verify(_s(student), "ref_cap")
    assert applied and paid.is_paid
