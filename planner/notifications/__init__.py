"""Notification sink: email templates, the outbox worker and sender adapters."""

from .outbox import NotificationOutbox
from .ports import EmailDeliveryError, EmailMessage, EmailSenderProtocol, NotifierProtocol

__all__ = [
    "NotificationOutbox",
    "EmailDeliveryError",
    "EmailMessage",
    "EmailSenderProtocol",
    "NotifierProtocol",
]
