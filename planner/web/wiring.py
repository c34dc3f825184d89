"""
Composition root: build repositories, adapters and services from settings.

Why:
    Routers fetch collaborators through `get_services()` so tests can swap the
    whole graph with `set_services()` (in-memory stores, recording notifier,
    fake gateway) without monkeypatching individual modules.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Optional

from planner.assignments.lifecycle import AssignmentLifecycle, AssignmentRepoProtocol
from planner.assignments.queries import AssignmentQueries
from planner.assignments.repo_memory import InMemoryAssignmentRepo
from planner.config import Settings, load_settings
from planner.identity_access.accounts import AccountsService, UsersRepoProtocol
from planner.identity_access.stores import InMemoryUserStore
from planner.notifications import NotificationOutbox, NotifierProtocol
from planner.notifications.senders import LoggingEmailSender, SmtpEmailSender
from planner.payments.gate import PaymentGate
from planner.payments.gateway import NullPaymentGateway, PaymentGatewayProtocol, PaystackClient
from planner.storage.memory import InMemoryBlobStore
from planner.storage.ports import BlobStoreProtocol

LOG = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    users: UsersRepoProtocol
    assignments: AssignmentRepoProtocol
    blobs: BlobStoreProtocol
    notifier: NotifierProtocol
    gateway: PaymentGatewayProtocol
    accounts: AccountsService
    lifecycle: AssignmentLifecycle
    queries: AssignmentQueries
    payments: PaymentGate

    def close(self) -> None:
        close = getattr(self.notifier, "close", None)
        if callable(close):
            close()


def build_services(
    settings: Settings,
    *,
    users: UsersRepoProtocol,
    assignments: AssignmentRepoProtocol,
    blobs: BlobStoreProtocol,
    notifier: NotifierProtocol,
    gateway: PaymentGatewayProtocol,
) -> Services:
    """Wire the use-case services around the given collaborators."""
    accounts = AccountsService(
        users=users,
        workload=assignments,  # type: ignore[arg-type]
        blobs=blobs,
        notifier=notifier,
        admin_email=settings.admin_email,
        admin_password=settings.admin_password,
    )
    lifecycle = AssignmentLifecycle(
        repo=assignments,
        users=users,
        notifier=notifier,
        blobs=blobs,
        admin_email=settings.admin_email,
        currency=settings.payment_currency,
        base_url=settings.base_url,
    )
    return Services(
        settings=settings,
        users=users,
        assignments=assignments,
        blobs=blobs,
        notifier=notifier,
        gateway=gateway,
        accounts=accounts,
        lifecycle=lifecycle,
        queries=AssignmentQueries(repo=assignments),
        payments=PaymentGate(repo=assignments, lifecycle=lifecycle, gateway=gateway),
    )


def _build_stores(settings: Settings):
    if settings.store_backend == "db":
        from planner.assignments.repo_db import DBAssignmentRepo
        from planner.identity_access.stores_db import DBUserStore

        return DBUserStore(settings.database_url or ""), DBAssignmentRepo(settings.database_url or "")
    return InMemoryUserStore(), InMemoryAssignmentRepo()


def _build_blobs(settings: Settings) -> BlobStoreProtocol:
    if settings.blob_backend == "supabase":
        from planner.storage.supabase import SupabaseBlobStore

        return SupabaseBlobStore(
            base_url=settings.supabase_url or "",
            service_role_key=settings.supabase_service_role_key or "",
            bucket=settings.storage_bucket,
        )
    return InMemoryBlobStore()


def _build_notifier(settings: Settings) -> NotificationOutbox:
    if settings.email_backend == "smtp":
        sender = SmtpEmailSender(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            sender=settings.sender_email,
        )
    else:
        sender = LoggingEmailSender()
    return NotificationOutbox(sender, max_size=settings.outbox_max_size)


def _build_gateway(settings: Settings) -> PaymentGatewayProtocol:
    if settings.paystack_secret_key:
        return PaystackClient(
            secret_key=settings.paystack_secret_key,
            base_url=settings.paystack_base_url,
            currency=settings.payment_currency,
        )
    LOG.warning("PAYSTACK_SECRET_KEY not set; payment endpoints will answer upstream_failure")
    return NullPaymentGateway(currency=settings.payment_currency)


def build_default_services(settings: Optional[Settings] = None) -> Services:
    cfg = settings or load_settings()
    users, assignments = _build_stores(cfg)
    return build_services(
        cfg,
        users=users,
        assignments=assignments,
        blobs=_build_blobs(cfg),
        notifier=_build_notifier(cfg),
        gateway=_build_gateway(cfg),
    )


_SERVICES: Optional[Services] = None


def get_services() -> Services:
    global _SERVICES
    if _SERVICES is None:
        _SERVICES = build_default_services()
    return _SERVICES


def set_services(services: Optional[Services]) -> None:
    """Replace the active service graph (tests); None rebuilds lazily from env."""
    global _SERVICES
    _SERVICES = services


__all__ = ["Services", "build_services", "build_default_services", "get_services", "set_services"]
