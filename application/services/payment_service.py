"""
Application service orchestrating the payment use-cases.

This class depends only on the application PaymentGateway port, the order
repository and DTOs. The gateway adapter is injected by the composition root
(API dependencies), keeping dependencies one-way. Every input is validated by
the DTO layer before any outbound call is made.
"""
from __future__ import annotations

from typing import Any, Optional

from application.dtos.payments import (
    EmbeddedJwtRequest,
    EmbeddedJwtResponse,
    PaymentLinkRequest,
    PaymentLinkResult,
    RefundPreview,
    RefundRequest,
    RefundResult,
)
from application.ports.document_store import SERVER_TIMESTAMP
from application.ports.payment_gateway import PaymentGateway
from application.result import Err, Ok, Result
from core.logging_config import get_logger
from domain.common.exceptions import (
    BusinessException,
    ConfigurationError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from domain.order.entity import Order
from domain.order.repository import OrderRepository


logger = get_logger(__name__)


class PaymentService:
    def __init__(self, gateway: PaymentGateway, orders: OrderRepository) -> None:
        self.gateway = gateway
        self.orders = orders

    async def merchant_status(self) -> Result[dict[str, Any]]:
        """Capability probe; never raises, failures come back as ``Err``."""
        try:
            status = await self.gateway.merchant_status()
        except BusinessException as exc:
            logger.warning("merchant_status_failed", error_type=exc.error_type, message=exc.message)
            return Err(exc.error_type, exc)
        return Ok(status)

    async def create_embedded_jwt(self, req: EmbeddedJwtRequest) -> EmbeddedJwtResponse:
        amount = req.amount
        if req.order_id:
            order = await self._lookup_order_for_amount(req.order_id)
            if order is not None and order.has_positive_total:
                # The stored total wins over whatever the browser sent
                amount = order.total
        try:
            token, exp = self.gateway.issue_session_token(
                amount,
                req.currency,
                customer=req.customer,
                products=req.products,
                summary=req.summary,
            )
        except ConfigurationError as exc:
            logger.error("embedded_jwt_failed", setting=(exc.details or {}).get("setting"))
            raise InternalError("jwt-failed", exc.message, details=exc.details) from exc
        logger.info(
            "embedded_jwt_issued",
            order_id=req.order_id,
            amount=str(amount),
            currency=req.currency,
            exp=exp,
        )
        return EmbeddedJwtResponse(
            jwt=token,
            exp=exp,
            embedded_base=self.gateway.embedded_base,
            env=self.gateway.environment,
        )

    async def _lookup_order_for_amount(self, order_id: str) -> Optional[Order]:
        # Lookup only refines the amount; a store hiccup must not block checkout
        try:
            order = await self.orders.get(order_id)
        except Exception as exc:  # noqa: BLE001
            logger.warning("embedded_jwt_order_lookup_failed", order_id=order_id, error=str(exc))
            return None
        if order is None:
            logger.warning("embedded_jwt_order_not_found", order_id=order_id)
        return order

    async def create_payment_link(self, req: PaymentLinkRequest) -> PaymentLinkResult:
        order = await self.orders.get(req.order_id)
        if order is None:
            raise NotFoundError("order-not-found", "Order not found", details={"orderId": req.order_id})
        if not order.has_positive_total:
            logger.warning("payment_link_invalid_total", order_id=order.id)
            raise ValidationError(
                "invalid-amount",
                "order total must be a positive number",
                field="total",
                details={"orderId": order.id},
            )

        attempt = await self.gateway.create_payment_link(
            order,
            success_url=req.success_url,
            cancel_url=req.cancel_url,
        )
        await self.orders.merge(
            order.id,
            {
                "paymentLink": {
                    "paymentUrl": attempt.payment_url,
                    "paymentLinkId": attempt.payment_link_id,
                    "lastAttempt": SERVER_TIMESTAMP,
                },
                "deluxe": {
                    "linkId": attempt.payment_link_id,
                    "paymentUrl": attempt.payment_url,
                    "lastLinkRequest": attempt.request,
                    "lastLinkResponse": attempt.response,
                },
            },
        )
        logger.info("payment_link_created", order_id=order.id, payment_link_id=attempt.payment_link_id)
        return PaymentLinkResult(payment_url=attempt.payment_url, payment_link_id=attempt.payment_link_id)

    async def refund(self, req: RefundRequest, *, debug: bool = False) -> RefundResult | RefundPreview:
        """Refund a payment, resolving the gateway payment id as needed.

        Resolution order: the caller's ``paymentId``; the id recorded on the
        order; a gateway payment search by transaction id and/or order id.
        A caller-supplied ``paymentId`` skips both the order read and the search.
        """
        payment_id = req.payment_id
        source = "request"
        order: Optional[Order] = None

        if not payment_id and req.order_id:
            order = await self.orders.get(req.order_id)
            if order is not None:
                payment_id = order.recorded_payment_id()
                source = "order"

        if not payment_id:
            search = await self.gateway.search_payment(
                transaction_id=req.transaction_id,
                order_id=req.order_id,
            )
            if not search.found:
                logger.warning(
                    "refund_payment_not_found",
                    order_id=req.order_id,
                    transaction_id=req.transaction_id,
                    search_status=search.status,
                )
                raise NotFoundError(
                    "payment-not-found",
                    "Could not resolve a gateway paymentId",
                    details={
                        "searchRequest": search.request,
                        "searchStatus": search.status,
                        "searchResponse": search.response,
                    },
                )
            payment_id = search.payment_id
            source = "search"

        body = self.gateway.build_refund(payment_id, req.amount, req.currency, req.is_ach)
        logger.info(
            "refund_resolved",
            order_id=req.order_id,
            payment_id=payment_id,
            source=source,
            debug=debug,
        )
        if debug:
            return RefundPreview(resolved_payment_id=payment_id, request=body)

        refund = await self.gateway.refund(body)
        logger.info("refund_submitted", payment_id=payment_id, correlation_id=refund.correlation_id)
        if order is not None and not order.has_canonical_payment_id():
            await self._backfill_payment_id(order.id, payment_id)
        return RefundResult(
            resolved_payment_id=payment_id,
            correlation_id=refund.correlation_id,
            gateway_body=refund.body,
        )

    async def _backfill_payment_id(self, order_id: str, payment_id: str) -> None:
        # Older orders keep the id under legacy names; record it canonically.
        # The refund has already gone through, so a failed write is only logged.
        try:
            await self.orders.merge(order_id, {"deluxe": {"paymentId": payment_id}})
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "refund_payment_id_backfill_failed",
                order_id=order_id,
                payment_id=payment_id,
                error=str(exc),
                exc_info=True,
            )
