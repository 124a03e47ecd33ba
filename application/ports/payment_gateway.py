"""
Payment gateway port (application/ports) exposing a replaceable protocol.

Application depends on this Protocol; infrastructure implements adapters.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional, Protocol, runtime_checkable

from application.dtos.payments import (
    GatewayRefund,
    PaymentLinkAttempt,
    PaymentSearchResult,
    WebhookEvent,
)
from domain.order.entity import Order


@runtime_checkable
class PaymentGateway(Protocol):
    """Gateway protocol for the third-party payment processor.

    Implementations are async and side-effect free beyond IO. Transactional
    calls raise ``UpstreamRejection`` on a non-success status.
    """

    provider: str
    environment: str
    embedded_base: str

    async def merchant_status(self) -> dict[str, Any]: ...

    def issue_session_token(
        self,
        amount: Decimal,
        currency: str,
        *,
        customer: Any = None,
        products: Any = None,
        summary: Any = None,
    ) -> tuple[str, int]: ...

    async def create_payment_link(
        self,
        order: Order,
        *,
        success_url: Optional[str] = None,
        cancel_url: Optional[str] = None,
    ) -> PaymentLinkAttempt: ...

    async def search_payment(
        self,
        *,
        transaction_id: Optional[str] = None,
        order_id: Optional[str] = None,
    ) -> PaymentSearchResult: ...

    def build_refund(
        self,
        payment_id: str,
        amount: Decimal,
        currency: str,
        is_ach: Optional[bool] = None,
    ) -> dict[str, Any]: ...

    async def refund(self, body: dict[str, Any]) -> GatewayRefund: ...

    def parse_webhook(self, headers: dict[str, Any], body: bytes) -> WebhookEvent: ...

    async def aclose(self) -> None: ...
