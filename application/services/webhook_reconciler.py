"""
Webhook reconciler: turns gateway payment events into the pending -> paid
transition plus the capacity increments for the booking.

The transition and the increments are committed as ONE batch guarded by a
requirement that the order is still awaiting payment. A redelivered event (or
two deliveries racing each other) finds the order already paid, the
requirement fails, and nothing is written, so capacity is counted once.

Outcomes never reach the HTTP response status; they are logged and returned
as a ``Result`` for the route to acknowledge.
"""
from __future__ import annotations

import ipaddress
from typing import Any, Iterable, Optional

from application.ports.document_store import (
    SERVER_TIMESTAMP,
    DocumentStore,
    PreconditionFailed,
)
from application.ports.payment_gateway import PaymentGateway
from application.result import Err, Ok, Result
from application.services.capacity_ledger import CapacityLedgerWriter
from core.logging_config import get_logger
from domain.order.entity import Order, OrderStatus
from domain.order.repository import OrderRepository
from shared.codes.payment_codes import is_approved_status


logger = get_logger(__name__)


def _awaiting_payment(doc: Optional[dict[str, Any]]) -> bool:
    return doc is not None and doc.get("status") in (None, "", OrderStatus.PENDING.value)


def ip_allowed(client_ip: Optional[str], allowlist: Optional[Iterable[str]]) -> bool:
    """True when no allowlist is configured or ``client_ip`` is in one of its networks."""
    if not allowlist:
        return True
    if not client_ip:
        return False
    try:
        addr = ipaddress.ip_address(client_ip)
    except ValueError:
        return False
    for entry in allowlist:
        try:
            if addr in ipaddress.ip_network(entry, strict=False):
                return True
        except ValueError:
            logger.warning("webhook_allowlist_invalid_entry", entry=entry)
    return False


class WebhookReconciler:
    def __init__(
        self,
        gateway: PaymentGateway,
        orders: OrderRepository,
        store: DocumentStore,
        ledger: Optional[CapacityLedgerWriter] = None,
        ip_allowlist: Optional[list[str]] = None,
    ) -> None:
        self.gateway = gateway
        self.orders = orders
        self.store = store
        self.ledger = ledger or CapacityLedgerWriter(store)
        self.ip_allowlist = ip_allowlist

    async def handle(
        self,
        headers: dict[str, Any],
        body: bytes,
        *,
        client_ip: Optional[str] = None,
    ) -> Result[str]:
        if not ip_allowed(client_ip, self.ip_allowlist):
            logger.warning("webhook_rejected_source", client_ip=client_ip)
            return Err("forbidden-source")
        try:
            return await self._reconcile(headers, body)
        except Exception as exc:  # noqa: BLE001 - acknowledged regardless, detail goes to logs
            logger.exception("webhook_failed", error=str(exc))
            return Err("internal-error", exc)

    async def _reconcile(self, headers: dict[str, Any], body: bytes) -> Result[str]:
        event = self.gateway.parse_webhook(headers, body)
        if not event.order_id:
            logger.info("webhook_unresolved", reason="no order id", status=event.status)
            return Ok("unresolved")

        if not is_approved_status(event.status):
            logger.info("webhook_not_approved", order_id=event.order_id, status=event.status)
            return Ok("not-approved")

        order = await self.orders.get(event.order_id)
        if order is None:
            logger.info("webhook_unresolved", reason="order not found", order_id=event.order_id)
            return Ok("unresolved")
        if not order.is_awaiting_payment():
            logger.info("webhook_duplicate_ignored", order_id=order.id, order_status=order.status)
            return Ok("duplicate")

        try:
            dates = await self._commit_paid(order, event.data, event.payment_id)
        except PreconditionFailed:
            # Another delivery won the race between our read and the commit
            logger.info("webhook_duplicate_ignored", order_id=order.id, order_status="changed")
            return Ok("duplicate")

        logger.info(
            "webhook_order_paid",
            order_id=order.id,
            status=event.status,
            payment_id=event.payment_id,
            capacity_dates=dates,
        )
        return Ok("paid")

    async def _commit_paid(self, order: Order, event: dict[str, Any], payment_id: Optional[str]) -> int:
        deluxe: dict[str, Any] = {"lastEvent": event, "updatedAt": SERVER_TIMESTAMP}
        if payment_id:
            deluxe["paymentId"] = payment_id

        batch = self.store.batch()
        batch.require(
            self.orders.collection,
            order.id,
            _awaiting_payment,
            "order is no longer pending",
        )
        batch.set(
            self.orders.collection,
            order.id,
            {"status": OrderStatus.PAID.value, "deluxe": deluxe, "updatedAt": SERVER_TIMESTAMP},
        )
        dates = self.ledger.stage(batch, order.booking)
        await batch.commit()
        return dates
