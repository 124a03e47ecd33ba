"""
Payment DTOs (Pydantic v2) used at application boundaries.

Caller JSON is loosely typed (numeric strings, aliased field names, optional
blocks). Each ``from_body`` is the single normalization step that turns it
into one canonical shape; nothing past this module branches on raw field
presence.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from domain.common.exceptions import InvalidMoney, ValidationError
from domain.common.money import normalize_money
from domain.order.entity import Currency


SUPPORTED_CURRENCIES = {c.value for c in Currency}


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def _first(body: dict[str, Any], *names: str) -> Any:
    for name in names:
        value = body.get(name)
        if value not in (None, ""):
            return value
    return None


def _opt_str(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list, bool)):
        return None
    s = str(value).strip()
    return s or None


def _positive_amount(value: Any) -> Decimal:
    try:
        amount = normalize_money(value)
    except InvalidMoney as exc:
        raise ValidationError("invalid-amount", "amount must be a positive number", field="amount") from exc
    if amount <= 0:
        raise ValidationError("invalid-amount", "amount must be a positive number", field="amount")
    return amount


def _currency(value: Any) -> str:
    if value in (None, ""):
        return Currency.USD.value
    code = str(value).strip().upper()
    if code not in SUPPORTED_CURRENCIES:
        raise ValidationError(
            "invalid-currency",
            f"currency must be one of {sorted(SUPPORTED_CURRENCIES)}",
            field="currency",
        )
    return code


def _opt_bool(value: Any) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y"}
    return bool(value)


class EmbeddedJwtRequest(BaseModel):
    amount: Decimal
    currency: str = Currency.USD.value
    order_id: Optional[str] = None
    customer: Optional[dict[str, Any]] = None
    products: Optional[list[Any]] = None
    summary: Optional[dict[str, Any]] = None

    @classmethod
    def from_body(cls, body: dict[str, Any]) -> "EmbeddedJwtRequest":
        customer = body.get("customer")
        products = body.get("products")
        summary = body.get("summary")
        return cls(
            amount=_positive_amount(body.get("amount")),
            currency=_currency(body.get("currency")),
            order_id=_opt_str(_first(body, "orderId", "order_id")),
            customer=customer if isinstance(customer, dict) else None,
            products=products if isinstance(products, list) else None,
            summary=summary if isinstance(summary, dict) else None,
        )


class EmbeddedJwtResponse(CamelModel):
    jwt: str
    exp: int
    embedded_base: str
    env: str


class PaymentLinkRequest(BaseModel):
    order_id: str
    success_url: Optional[str] = None
    cancel_url: Optional[str] = None

    @classmethod
    def from_body(cls, body: dict[str, Any]) -> "PaymentLinkRequest":
        order_id = _opt_str(_first(body, "orderId", "order_id"))
        if not order_id:
            raise ValidationError("missing-order-id", "Missing orderId", field="orderId")
        return cls(
            order_id=order_id,
            success_url=_opt_str(body.get("successUrl")),
            cancel_url=_opt_str(body.get("cancelUrl")),
        )


class PaymentLinkResult(CamelModel):
    payment_url: str
    payment_link_id: Optional[str] = None


class RefundRequest(BaseModel):
    amount: Decimal
    currency: str = Currency.USD.value
    payment_id: Optional[str] = None
    order_id: Optional[str] = None
    transaction_id: Optional[str] = None
    is_ach: Optional[bool] = None

    @classmethod
    def from_body(cls, body: dict[str, Any]) -> "RefundRequest":
        amount = _positive_amount(body.get("amount"))
        req = cls(
            amount=amount,
            currency=_currency(body.get("currency")),
            payment_id=_opt_str(_first(body, "paymentId", "PaymentId", "payment_id")),
            order_id=_opt_str(_first(body, "orderId", "order_id")),
            transaction_id=_opt_str(_first(body, "transactionId", "originalTransactionId", "transaction_id")),
            is_ach=_opt_bool(_first(body, "isACH", "isAch", "is_ach")),
        )
        if not (req.payment_id or req.order_id or req.transaction_id):
            raise ValidationError(
                "missing-identifiers",
                "One of paymentId, orderId or transactionId is required",
            )
        return req


class RefundResult(BaseModel):
    """Gateway refund body enriched with how the payment was resolved."""

    resolved_payment_id: str
    correlation_id: Optional[str] = None
    gateway_body: Any = None

    def to_json(self) -> dict[str, Any]:
        base = dict(self.gateway_body) if isinstance(self.gateway_body, dict) else {"response": self.gateway_body}
        base["resolvedPaymentId"] = self.resolved_payment_id
        base["correlationId"] = self.correlation_id
        return base


class WebhookEvent(BaseModel):
    order_id: Optional[str] = None
    status: Optional[str] = None
    payment_id: Optional[str] = None
    data: dict[str, Any] = Field(default_factory=dict)


class PaymentLinkAttempt(BaseModel):
    """Successful payment-link call: what was sent and what came back."""

    request: dict[str, Any]
    response: Any
    payment_url: str
    payment_link_id: Optional[str] = None


class PaymentSearchResult(BaseModel):
    request: dict[str, Any]
    status: int
    response: Any = None
    payment_id: Optional[str] = None

    @property
    def found(self) -> bool:
        return 200 <= self.status < 300 and bool(self.payment_id)


class GatewayRefund(BaseModel):
    body: Any = None
    correlation_id: Optional[str] = None


class RefundPreview(CamelModel):
    """Debug short-circuit: the refund body that would have been sent."""

    debug: bool = True
    resolved_payment_id: str
    request: dict[str, Any]
