"""
Factory for payment gateway clients.
"""
from __future__ import annotations

from application.context import AppContext
from application.ports.payment_gateway import PaymentGateway


def get_payment_gateway(context: AppContext) -> PaymentGateway:
    """A fresh gateway adapter for one request; the caller must ``aclose()`` it."""
    from .deluxe_client import DeluxeClient
    return DeluxeClient(
        context.gateway_settings,
        transport=context.http_transport,
        clock=context.clock,
    )
