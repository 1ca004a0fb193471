import time
from typing import Dict, Optional
from uuid import uuid4

from cornshop.config import settings


class PaymentDeclined(Exception):
    """Non-retryable payment failure (e.g. insufficient funds)."""


class PaymentGatewayError(Exception):
    """Gateway unreachable or failed; surfaced to the caller, never retried here."""


class MockPaymentAdapter:
    """
    Stand-in for the card / e-wallet gateway.

    ``payment_details`` may carry ``force_decline`` or ``force_error`` to
    exercise the failure paths.
    """

    def __init__(self, delay_ms: Optional[int] = None):
        delay_ms = settings.PAYMENT_MOCK_DELAY_MS if delay_ms is None else delay_ms
        self.delay_seconds = delay_ms / 1000.0

    def charge(self, amount: float, method: str, payment_details: Optional[Dict] = None) -> Dict:
        payment_details = payment_details or {}
        time.sleep(self.delay_seconds)

        if payment_details.get("force_error"):
            raise PaymentGatewayError("Simulated gateway outage")
        if payment_details.get("force_decline"):
            raise PaymentDeclined("Simulated forced decline")

        return {
            "transaction_id": f"mock-{uuid4().hex}",
            "status": "captured",
            "method": method,
            "amount": amount,
        }

    def refund(self, transaction_id: str) -> Dict:
        time.sleep(self.delay_seconds)
        return {
            "refund_id": f"refund-{uuid4().hex}",
            "status": "refunded",
            "transaction_id": transaction_id,
        }

    def health_check(self) -> bool:
        return True
