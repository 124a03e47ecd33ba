"""
Payments API routes.

Thin handlers: parse the loosely-typed JSON body into a request DTO, call the
application service, return a plain JSON object. Best-effort endpoints map an
``Err`` result to the fixed bodies in ``FALLBACKS``.
"""
from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Depends, Query, Request

from api.dependencies import get_payment_service, get_webhook_reconciler
from application.dtos.payments import (
    EmbeddedJwtRequest,
    PaymentLinkRequest,
    RefundRequest,
)
from application.result import Ok, Result
from application.services.payment_service import PaymentService
from application.services.webhook_reconciler import WebhookReconciler
from core.response import json_response
from domain.common.exceptions import ValidationError


router = APIRouter(tags=["Payments"])


# What a best-effort endpoint answers when its operation failed
FALLBACKS: dict[str, dict[str, Any]] = {
    "merchant_status": {"applePayEnabled": False, "googlePayEnabled": False},
    "webhook": {"ok": False},
}

TRUTHY = {"1", "true", "yes", "on"}


def respond(result: Result, fallback: str, on_ok: Any = None):
    if isinstance(result, Ok):
        return json_response(result.value if on_ok is None else on_ok)
    return json_response(FALLBACKS[fallback])


async def json_body(request: Request) -> dict[str, Any]:
    raw = await request.body()
    if not raw or not raw.strip():
        return {}
    try:
        body = json.loads(raw)
    except ValueError as exc:
        raise ValidationError("invalid-request", "Request body must be valid JSON") from exc
    if not isinstance(body, dict):
        raise ValidationError("invalid-request", "Request body must be a JSON object")
    return body


@router.get("/health", summary="Liveness probe")
async def health():
    return json_response({"status": "ok"}, headers={"Cache-Control": "no-store"})


@router.get("/getEmbeddedMerchantStatus", summary="Wallet capability flags for the embedded widget")
async def get_embedded_merchant_status(service: PaymentService = Depends(get_payment_service)):
    return respond(await service.merchant_status(), "merchant_status")


@router.post("/createEmbeddedJwt", summary="Issue a short-lived embedded payment session token")
async def create_embedded_jwt(request: Request, service: PaymentService = Depends(get_payment_service)):
    req = EmbeddedJwtRequest.from_body(await json_body(request))
    result = await service.create_embedded_jwt(req)
    return json_response(result.to_json())


@router.post("/createDeluxePayment", summary="Create a hosted payment link for an order")
async def create_deluxe_payment(request: Request, service: PaymentService = Depends(get_payment_service)):
    req = PaymentLinkRequest.from_body(await json_body(request))
    result = await service.create_payment_link(req)
    return json_response(result.model_dump(mode="json", by_alias=True))


@router.post("/refundDeluxePayment", summary="Refund a payment, resolving its gateway id")
async def refund_deluxe_payment(
    request: Request,
    debug: str | None = Query(default=None),
    service: PaymentService = Depends(get_payment_service),
):
    req = RefundRequest.from_body(await json_body(request))
    result = await service.refund(req, debug=(debug or "").strip().lower() in TRUTHY)
    return json_response(result.to_json())


@router.post("/deluxe/webhook", summary="Gateway payment event receiver")
async def deluxe_webhook(request: Request, reconciler: WebhookReconciler = Depends(get_webhook_reconciler)):
    # Always acknowledged with 200
    raw_body = await request.body()
    headers = {k: v for k, v in request.headers.items()}
    client_ip = getattr(request.state, "client_ip", None)
    result = await reconciler.handle(headers, raw_body, client_ip=client_ip)
    return respond(result, "webhook", on_ok={"ok": True})
