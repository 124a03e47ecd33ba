"""
Deluxe gateway adapter.

Two families of endpoints:
- transactional (payment links, refunds, payment search) on the API host,
  authorized by a fresh OAuth bearer plus the static ``PartnerToken`` header;
- embedded (merchant status) on the embedded host, authorized by an HS256
  token this service signs itself, sent in the JSON body.

Field names in gateway payloads are inconsistent across endpoints and
versions, so every read goes through a list of tolerated spellings.
"""
from __future__ import annotations

import json
from decimal import Decimal
from typing import Any, Optional, Callable
import time

import httpx

from application.dtos.payments import (
    GatewayRefund,
    PaymentLinkAttempt,
    PaymentSearchResult,
    WebhookEvent,
)
from core.settings import GatewaySettings
from domain.common.exceptions import ConfigurationError
from domain.order.entity import Order
from infrastructure.external.payments import builders
from infrastructure.external.payments.base import BasePaymentClient, GatewayResponse
from infrastructure.external.payments.exceptions import (
    UpstreamProtocolError,
    UpstreamRejection,
)
from infrastructure.external.payments.oauth import GatewayOAuthClient
from infrastructure.external.payments.token_signer import TokenSigner


PAYMENT_ID_FIELDS = ("paymentId", "PaymentId", "paymentID", "id")
SEARCH_RESULT_LISTS = ("payments", "data", "results", "items", "transactions")
CORRELATION_HEADERS = ("x-correlation-id", "correlation-id", "x-request-id", "request-id")
CORRELATION_FIELDS = ("correlationId", "CorrelationId", "requestId", "RequestId")
WEBHOOK_STATUS_FIELDS = ("status", "Status", "transactionStatus", "paymentStatus")


def _first_value(data: Any, names: tuple[str, ...]) -> Optional[str]:
    if not isinstance(data, dict):
        return None
    for name in names:
        value = data.get(name)
        if value not in (None, "") and not isinstance(value, (dict, list)):
            return str(value)
    return None


def extract_search_payment_id(payload: Any) -> Optional[str]:
    """Payment id of the first search hit, whatever envelope the gateway used."""
    results: Any = payload
    if isinstance(payload, dict):
        for key in SEARCH_RESULT_LISTS:
            if isinstance(payload.get(key), list):
                results = payload[key]
                break
        else:
            return _first_value(payload, PAYMENT_ID_FIELDS)
    if isinstance(results, list) and results:
        return _first_value(results[0], PAYMENT_ID_FIELDS)
    return None


def extract_webhook_order_id(event: dict[str, Any]) -> Optional[str]:
    """``orderData.orderId`` first, then a ``customData`` entry named ``orderId``."""
    order_data = event.get("orderData")
    if isinstance(order_data, dict):
        order_id = _first_value(order_data, ("orderId", "OrderId"))
        if order_id:
            return order_id
    custom = event.get("customData")
    if isinstance(custom, list):
        for entry in custom:
            if isinstance(entry, dict) and entry.get("name") == "orderId" and entry.get("value"):
                return str(entry["value"])
    return None


class DeluxeClient(BasePaymentClient):
    provider = "deluxe"

    def __init__(
        self,
        cfg: GatewaySettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__(timeouts=cfg.timeouts.model_dump(), transport=transport)
        self._cfg = cfg
        self.environment = cfg.environment
        self.embedded_base = cfg.embedded_base
        self._signer = TokenSigner(
            cfg.embedded_secret,
            cfg.access_token,
            status_ttl=cfg.status_token_ttl_seconds,
            session_ttl=cfg.session_token_ttl_seconds,
            clock=clock,
        )
        self._oauth = GatewayOAuthClient(
            self,
            token_url=cfg.gateway_url(cfg.paths.oauth_token),
            client_id=cfg.client_id,
            client_secret=cfg.client_secret,
        )

    async def _transactional_post(self, operation: str, path: str, body: dict[str, Any]) -> GatewayResponse:
        if not self._cfg.access_token:
            raise ConfigurationError("DELUXE__ACCESS_TOKEN")
        bearer = await self._oauth.acquire()
        return await self._post(
            operation,
            self._cfg.gateway_url(path),
            json_body=body,
            headers={
                "Authorization": f"Bearer {bearer}",
                "PartnerToken": self._cfg.access_token,
            },
        )

    async def merchant_status(self) -> dict[str, Any]:
        token = self._signer.status_probe_token()
        resp = await self._post(
            "merchant_status",
            self._cfg.embedded_url(self._cfg.paths.merchant_status),
            json_body=builders.build_merchant_status_body(token.token),
        )
        if not resp.ok:
            raise UpstreamRejection("merchant-status-failed", status=resp.status_code, body=resp.body, provider=self.provider)
        if not isinstance(resp.data, dict):
            raise UpstreamProtocolError("merchantStatus: non-object response", provider=self.provider, response=resp.text)
        return resp.data

    def issue_session_token(
        self,
        amount: Decimal,
        currency: str,
        *,
        customer: Any = None,
        products: Any = None,
        summary: Any = None,
    ) -> tuple[str, int]:
        claims = builders.build_session_claims(
            amount, currency, customer=customer, products=products, summary=summary
        )
        token = self._signer.session_token(claims)
        return token.token, token.exp

    async def create_payment_link(
        self,
        order: Order,
        *,
        success_url: Optional[str] = None,
        cancel_url: Optional[str] = None,
    ) -> PaymentLinkAttempt:
        body = builders.build_payment_link_body(
            order,
            success_url=success_url,
            cancel_url=cancel_url,
            expiry=self._cfg.payment_link_expiry,
        )
        resp = await self._transactional_post("payment_link", self._cfg.paths.payment_links, body)
        if not resp.ok:
            raise UpstreamRejection("paymentlinks-failed", status=resp.status_code, body=resp.body, provider=self.provider)
        payment_url = resp.pick("paymentUrl", "PaymentUrl")
        if not payment_url:
            raise UpstreamProtocolError(
                "No paymentUrl in response",
                provider=self.provider,
                error_type="no-payment-url",
                response=resp.body,
            )
        link_id = resp.pick("paymentLinkId", "PaymentLinkId")
        return PaymentLinkAttempt(
            request=body,
            response=resp.body,
            payment_url=str(payment_url),
            payment_link_id=str(link_id) if link_id else None,
        )

    async def search_payment(
        self,
        *,
        transaction_id: Optional[str] = None,
        order_id: Optional[str] = None,
    ) -> PaymentSearchResult:
        body = builders.build_payment_search_body(transaction_id=transaction_id, order_id=order_id)
        resp = await self._transactional_post("payment_search", self._cfg.paths.payment_search, body)
        return PaymentSearchResult(
            request=body,
            status=resp.status_code,
            response=resp.body,
            payment_id=extract_search_payment_id(resp.data) if resp.ok else None,
        )

    def build_refund(
        self,
        payment_id: str,
        amount: Decimal,
        currency: str,
        is_ach: Optional[bool] = None,
    ) -> dict[str, Any]:
        return builders.build_refund_body(payment_id, amount, currency, is_ach)

    async def refund(self, body: dict[str, Any]) -> GatewayRefund:
        resp = await self._transactional_post("refund", self._cfg.paths.refunds, body)
        correlation_id = self._correlation_id(resp)
        if not resp.ok:
            raise UpstreamRejection(
                "refund-failed",
                status=resp.status_code,
                body=resp.body,
                provider=self.provider,
                details={"resolvedPaymentId": body.get("paymentId"), "correlationId": correlation_id},
            )
        return GatewayRefund(body=resp.body, correlation_id=correlation_id)

    @staticmethod
    def _correlation_id(resp: GatewayResponse) -> Optional[str]:
        for header in CORRELATION_HEADERS:
            if resp.headers.get(header):
                return resp.headers[header]
        return _first_value(resp.data, CORRELATION_FIELDS)

    def parse_webhook(self, headers: dict[str, Any], body: bytes) -> WebhookEvent:
        try:
            payload = json.loads(body or b"{}")
        except ValueError as exc:
            raise UpstreamProtocolError("Webhook body is not JSON", provider=self.provider, status_code=400) from exc
        if not isinstance(payload, dict):
            raise UpstreamProtocolError("Webhook body is not an object", provider=self.provider, status_code=400)

        # Some deliveries wrap the transaction in a "data" envelope
        candidates = [payload]
        if isinstance(payload.get("data"), dict):
            candidates.append(payload["data"])

        order_id = next((oid for oid in (extract_webhook_order_id(c) for c in candidates) if oid), None)
        status = next((s for s in (_first_value(c, WEBHOOK_STATUS_FIELDS) for c in candidates) if s), None)
        payment_id = next((p for p in (_first_value(c, ("paymentId", "PaymentId")) for c in candidates) if p), None)
        return WebhookEvent(order_id=order_id, status=status, payment_id=payment_id, data=payload)
