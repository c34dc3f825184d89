"""
Notification ports: the message type, the sink the core emits into, and the
sender adapters the outbox worker drains into.

Keep these small and framework-agnostic so tests can supply simple fakes.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    body: str


class NotifierProtocol(Protocol):
    """Fire-and-forget sink used by services after a transition is persisted.

    Implementations must never raise and never block on delivery.
    """

    def emit(self, message: EmailMessage) -> None: ...


class EmailSenderProtocol(Protocol):
    """Delivers a single email. May raise; the outbox worker absorbs failures."""

    def send(self, *, to: str, subject: str, body: str) -> None: ...


class EmailDeliveryError(Exception):
    """Raised by senders when the mail server rejects or cannot be reached."""


__all__ = ["EmailMessage", "NotifierProtocol", "EmailSenderProtocol", "EmailDeliveryError"]
