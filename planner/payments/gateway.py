"""
Payment gateway adapters.

Only the request/response contract of the gateway is modelled:

- POST {base}/transaction/initialize  {email, amount (minor units), currency, metadata}
  → data.authorization_url
- GET  {base}/transaction/verify/{reference}
  → data.status, data.amount (minor units), data.metadata

Security:
- The secret key travels only in the Authorization header and is never logged.
- Gateway failures surface as `UpstreamFailure`; the raw response body is not
  echoed to clients.
"""
from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Dict, Mapping, Protocol
from urllib.parse import quote

import requests

from planner.errors import UpstreamFailure

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentVerification:
    reference: str
    status: str
    amount: int  # minor units (pesewas for GHS)
    metadata: Dict[str, Any] = field(default_factory=dict)


class PaymentGatewayProtocol(Protocol):
    currency: str

    def initialize(self, *, email: str, amount: float, metadata: Mapping[str, Any]) -> str:
        """Start a transaction and return the hosted authorization URL."""
        ...

    def verify(self, reference: str) -> PaymentVerification:
        ...


def to_minor_units(amount: float) -> int:
    return int(round(float(amount) * 100))


class PaystackClient:
    def __init__(self, *, secret_key: str, base_url: str = "https://api.paystack.co", currency: str = "GHS", timeout: float = 15.0) -> None:
        if not secret_key:
            raise ValueError("paystack_not_configured")
        self._secret_key = secret_key
        self._base_url = base_url.rstrip("/")
        self.currency = currency
        self._timeout = timeout

    def _headers(self) -> dict:
        return {"Authorization": f"Bearer {self._secret_key}", "Content-Type": "application/json"}

    def _data(self, resp: requests.Response, op: str) -> Dict[str, Any]:
        if resp.status_code != 200:
            LOG.warning("Paystack %s rejected (status=%s)", op, resp.status_code)
            raise UpstreamFailure(f"payment_{op}_failed")
        try:
            body = resp.json()
        except ValueError as exc:
            raise UpstreamFailure(f"payment_{op}_failed") from exc
        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, dict):
            raise UpstreamFailure(f"payment_{op}_failed")
        return data

    def initialize(self, *, email: str, amount: float, metadata: Mapping[str, Any]) -> str:
        payload = {
            "email": email,
            "amount": to_minor_units(amount),
            "currency": self.currency,
            "metadata": dict(metadata),
        }
        try:
            resp = requests.post(
                f"{self._base_url}/transaction/initialize",
                json=payload,
                headers=self._headers(),
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            LOG.warning("Paystack initialize failed: %s", exc.__class__.__name__)
            raise UpstreamFailure("payment_gateway_unreachable") from exc
        url = self._data(resp, "initialize").get("authorization_url")
        if not isinstance(url, str) or not url:
            raise UpstreamFailure("payment_initialize_failed")
        return url

    def verify(self, reference: str) -> PaymentVerification:
        try:
            resp = requests.get(
                f"{self._base_url}/transaction/verify/{quote(reference, safe='')}",
                headers=self._headers(),
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            LOG.warning("Paystack verify failed: %s", exc.__class__.__name__)
            raise UpstreamFailure("payment_gateway_unreachable") from exc
        data = self._data(resp, "verify")
        metadata = data.get("metadata")
        try:
            amount = int(data.get("amount") or 0)
        except (TypeError, ValueError):
            amount = 0
        return PaymentVerification(
            reference=reference,
            status=str(data.get("status") or ""),
            amount=amount,
            metadata=metadata if isinstance(metadata, dict) else {},
        )


class NullPaymentGateway:
    """Used when no gateway key is configured (local development)."""

    def __init__(self, currency: str = "GHS") -> None:
        self.currency = currency

    def initialize(self, *, email: str, amount: float, metadata: Mapping[str, Any]) -> str:
        raise UpstreamFailure("payment_gateway_not_configured")

    def verify(self, reference: str) -> PaymentVerification:
        raise UpstreamFailure("payment_gateway_not_configured")


__all__ = [
    "PaymentVerification",
    "PaymentGatewayProtocol",
    "PaystackClient",
    "NullPaymentGateway",
    "to_minor_units",
]
