"""
Test doubles and builders shared by unit and API tests.

Why:
    Services take their collaborators as protocols; these fakes implement
    them in memory so tests can assert on notifications, uploads and gateway
    calls without SMTP, Supabase or Paystack.
"""
from __future__ import annotations

from dataclasses import replace
import threading
from typing import Dict, List, Mapping, Optional

from planner.assignments.repo_memory import InMemoryAssignmentRepo
from planner.config import DEFAULT_ADMIN_PASSWORD, Settings
from planner.errors import UpstreamFailure
from planner.identity_access.domain import Role, User
from planner.identity_access.passwords import hash_password
from planner.identity_access.stores import InMemoryUserStore
from planner.notifications.ports import EmailMessage
from planner.payments.gateway import PaymentVerification
from planner.storage.memory import InMemoryBlobStore
from planner.storage.ports import BlobStoreError, UploadedFile
from planner.web.wiring import Services, build_services

ADMIN_EMAIL = "admin@aplusplanner.com"
PASSWORD = "Secret123!"


class RecordingNotifier:
    """Synchronous notifier that keeps every emitted message."""

    def __init__(self) -> None:
        self.messages: List[EmailMessage] = []
        self._lock = threading.Lock()

    def emit(self, message: EmailMessage) -> None:
        with self._lock:
            self.messages.append(message)

    def subjects(self) -> List[str]:
        return [m.subject for m in self.messages]

    def to(self, address: str) -> List[EmailMessage]:
        return [m for m in self.messages if m.to == address]


class ExplodingNotifier:
    def emit(self, message: EmailMessage) -> None:
        raise RuntimeError("queue unavailable")


class FailingBlobStore:
    def upload(self, *, key: str, data: bytes, content_type: str) -> str:
        raise BlobStoreError("storage_unreachable")


class FakeGateway:
    """Payment gateway double: records checkouts and answers configured verifications."""

    def __init__(self, currency: str = "GHS") -> None:
        self.currency = currency
        self.initialized: List[Dict[str, object]] = []
        self.verifications: Dict[str, PaymentVerification] = {}
        self.verify_calls: List[str] = []

    def initialize(self, *, email: str, amount: float, metadata: Mapping[str, object]) -> str:
        self.initialized.append({"email": email, "amount": amount, "metadata": dict(metadata)})
        return f"https://checkout.test/pay/{len(self.initialized)}"

    def verify(self, reference: str) -> PaymentVerification:
        self.verify_calls.append(reference)
        found = self.verifications.get(reference)
        if found is None:
            raise UpstreamFailure("payment_verify_failed")
        return found

    def succeed(self, reference: str, *, assignment_id: str, amount_minor: int) -> None:
        self.verifications[reference] = PaymentVerification(
            reference=reference,
            status="success",
            amount=amount_minor,
            metadata={"assignmentId": assignment_id},
        )

    def fail(self, reference: str, *, assignment_id: str, status: str = "failed") -> None:
        self.verifications[reference] = PaymentVerification(
            reference=reference,
            status=status,
            amount=0,
            metadata={"assignmentId": assignment_id},
        )


def make_settings(**overrides) -> Settings:
    base = Settings(
        environment="dev",
        store_backend="memory",
        database_url=None,
        session_secret="test-session-secret-with-enough-length-0123456789",
        session_ttl_seconds=3600,
        admin_email=ADMIN_EMAIL,
        admin_password=DEFAULT_ADMIN_PASSWORD,
        blob_backend="memory",
        supabase_url=None,
        supabase_service_role_key=None,
        storage_bucket="assignments",
        email_backend="log",
        smtp_host="smtp.example.com",
        smtp_port=587,
        smtp_username="",
        smtp_password="",
        sender_email="no-reply@aplusplanner.com",
        outbox_max_size=100,
        paystack_secret_key=None,
        paystack_base_url="https://api.paystack.co",
        payment_currency="GHS",
        base_url="http://planner.test",
    )
    return replace(base, **overrides)


def make_services(**overrides) -> Services:
    """Fully in-memory service graph with a recording notifier and fake gateway."""
    defaults = {
        "users": InMemoryUserStore,
        "assignments": InMemoryAssignmentRepo,
        "blobs": InMemoryBlobStore,
        "notifier": RecordingNotifier,
        "gateway": FakeGateway,
    }
    parts = {name: overrides[name] if overrides.get(name) is not None else factory() for name, factory in defaults.items()}
    return build_services(overrides.get("settings") or make_settings(), **parts)


def seed_student(services: Services, *, email: str = "ama@ug.edu.gh", first_name: str = "Ama") -> User:
    return services.users.create_user(
        first_name=first_name,
        last_name="Mensah",
        email=email,
        password_hash=hash_password(PASSWORD, iterations=1000),
        role=Role.STUDENT,
        is_approved=True,
    )


def seed_tutor(
    services: Services,
    *,
    email: str = "kofi@tutors.gh",
    first_name: str = "Kofi",
    specialty: Optional[str] = "Computer Science",
    approved: bool = True,
) -> User:
    return services.users.create_user(
        first_name=first_name,
        last_name="Boateng",
        email=email,
        password_hash=hash_password(PASSWORD, iterations=1000),
        role=Role.TUTOR,
        program_specialty=specialty,
        certificate_url="memory://blobs/tutor_certificates/cert.pdf",
        is_approved=approved,
    )


def pdf_upload(name: str = "essay.pdf", data: bytes = b"%PDF-1.4 assignment") -> UploadedFile:
    return UploadedFile(filename=name, content_type="application/pdf", data=data)
