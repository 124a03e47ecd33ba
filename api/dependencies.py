"""
API dependencies - wiring the application context into services.
"""
from typing import AsyncIterator

from fastapi import Depends, Request

from application.context import AppContext
from application.ports.payment_gateway import PaymentGateway
from application.services.capacity_ledger import CapacityLedgerWriter
from application.services.payment_service import PaymentService
from application.services.webhook_reconciler import WebhookReconciler
from infrastructure.external.payments import get_payment_gateway
from infrastructure.repositories.order_repository import DocumentOrderRepository


def get_context(request: Request) -> AppContext:
    return request.app.state.context


async def get_gateway(context: AppContext = Depends(get_context)) -> AsyncIterator[PaymentGateway]:
    """One gateway adapter (and httpx client) per request."""
    gateway = get_payment_gateway(context)
    try:
        yield gateway
    finally:
        await gateway.aclose()


def get_order_repository(context: AppContext = Depends(get_context)) -> DocumentOrderRepository:
    return DocumentOrderRepository(context.store)


def get_payment_service(
    gateway: PaymentGateway = Depends(get_gateway),
    orders: DocumentOrderRepository = Depends(get_order_repository),
) -> PaymentService:
    return PaymentService(gateway, orders)


def get_webhook_reconciler(
    context: AppContext = Depends(get_context),
    gateway: PaymentGateway = Depends(get_gateway),
    orders: DocumentOrderRepository = Depends(get_order_repository),
) -> WebhookReconciler:
    return WebhookReconciler(
        gateway,
        orders,
        context.store,
        ledger=CapacityLedgerWriter(context.store),
        ip_allowlist=context.gateway_settings.webhook.ip_allowlist,
    )
