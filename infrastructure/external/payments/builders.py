"""
Request builders: pure transforms from internal shapes to gateway bodies.

No I/O here. Money always goes through ``normalize_money``/``try_money`` and
is emitted as a JSON number in whole currency units.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

from domain.common.exceptions import ValidationError
from domain.common.money import money_to_json, try_money
from domain.order.entity import Level3Item, Order
from domain.order.names import resolve_name, to_alpha3


PAYMENT_LINK_EXPIRY = "9 DAYS"

# Claims owned by the signer/builder; caller-supplied flags never replace them
RESERVED_SESSION_CLAIMS = frozenset({
    "accessToken", "iat", "exp", "amount", "currencyCode", "customer", "products", "orderId", "summary",
})

_CUSTOMER_FIELDS = ("firstName", "lastName", "email", "phone")
_ADDRESS_FIELDS = {
    "address": ("address", "line1"),
    "city": ("city",),
    "state": ("state",),
    "zipCode": ("zipCode", "postalCode"),
}
_PRODUCT_TEXT_FIELDS = ("skuCode", "description", "unitOfMeasure")


def _text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list, bool)):
        return None
    s = str(value).strip()
    return s or None


def _positive_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        n = int(value)
    except (TypeError, ValueError):
        return None
    if isinstance(value, float) and n != value:
        return None
    return n if n > 0 else None


def _level3_json(item: Level3Item) -> dict[str, Any]:
    out: dict[str, Any] = {"quantity": item.quantity, "price": money_to_json(item.price)}
    if item.sku_code:
        out["skuCode"] = item.sku_code
    if item.description:
        out["description"] = item.description
    if item.unit_of_measure:
        out["unitOfMeasure"] = item.unit_of_measure
    if item.item_discount_amount is not None:
        out["itemDiscountAmount"] = money_to_json(item.item_discount_amount)
    if item.item_discount_rate is not None:
        out["itemDiscountRate"] = item.item_discount_rate
    return out


def build_payment_link_body(
    order: Order,
    *,
    success_url: Optional[str] = None,
    cancel_url: Optional[str] = None,
    expiry: str = PAYMENT_LINK_EXPIRY,
) -> dict[str, Any]:
    """Hosted payment-link request for ``order``; a missing or non-positive total is rejected."""
    if not order.has_positive_total:
        raise ValidationError("invalid-amount", "order total must be a positive number", field="total")
    first_name, last_name = resolve_name(order.customer.first_name, order.customer.last_name, order.customer.name)
    body: dict[str, Any] = {
        "amount": {"amount": money_to_json(order.total), "currency": order.currency.value},
        "firstName": first_name,
        "lastName": last_name,
        "orderData": {"orderId": order.id},
        "paymentLinkExpiry": expiry,
        "acceptPaymentMethod": ["Card"],
        "deliveryMethod": "ReturnOnly",
    }
    if order.level3:
        body["level3"] = [_level3_json(item) for item in order.level3]

    custom_data = []
    if success_url:
        custom_data.append({"name": "successUrl", "value": str(success_url)})
    if cancel_url:
        custom_data.append({"name": "cancelUrl", "value": str(cancel_url)})
    if order.customer.email:
        custom_data.append({"name": "email", "value": str(order.customer.email)})
    if custom_data:
        body["customData"] = custom_data
    return body


def sanitize_customer(customer: Any) -> Optional[dict[str, Any]]:
    """Keep known customer fields; country is coerced to ISO alpha-3."""
    if not isinstance(customer, dict):
        return None
    out: dict[str, Any] = {}
    for key in _CUSTOMER_FIELDS:
        value = _text(customer.get(key))
        if value:
            out[key] = value
    address = customer.get("billingAddress")
    if isinstance(address, dict):
        clean: dict[str, Any] = {}
        for key, sources in _ADDRESS_FIELDS.items():
            value = next((v for v in (_text(address.get(s)) for s in sources) if v), None)
            if value:
                clean[key] = value
        clean["countryCode"] = to_alpha3(_text(address.get("countryCode")) or _text(address.get("country")))
        out["billingAddress"] = clean
    return out or None


def sanitize_product(product: Any) -> Optional[dict[str, Any]]:
    """A product survives only with both a name and a valid price."""
    if not isinstance(product, dict):
        return None
    name = _text(product.get("name"))
    price = try_money(product.get("price", product.get("amount")))
    if not name or price is None:
        return None
    out: dict[str, Any] = {"name": name, "price": money_to_json(price)}
    for key in _PRODUCT_TEXT_FIELDS:
        value = _text(product.get(key))
        if value:
            out[key] = value
    quantity = _positive_int(product.get("quantity"))
    if quantity is not None:
        out["quantity"] = quantity
    discount = try_money(product.get("itemDiscountAmount"))
    if discount is not None:
        out["itemDiscountAmount"] = money_to_json(discount)
    return out


def sanitize_products(products: Any) -> Optional[list[dict[str, Any]]]:
    """Sanitized products, or None (not an empty list) when none survive."""
    if not isinstance(products, list):
        return None
    kept = [p for p in (sanitize_product(item) for item in products) if p]
    return kept or None


def summary_flags(summary: Any) -> dict[str, bool]:
    """Boolean display flags, flattened; the gateway rejects a nested summary object."""
    if not isinstance(summary, dict):
        return {}
    return {
        str(k): v
        for k, v in summary.items()
        if isinstance(v, bool) and str(k) not in RESERVED_SESSION_CLAIMS
    }


def build_session_claims(
    amount: Decimal,
    currency: str,
    *,
    customer: Any = None,
    products: Any = None,
    summary: Any = None,
) -> dict[str, Any]:
    """Endpoint-specific claims of the embedded session token (never an order id)."""
    claims: dict[str, Any] = {
        "amount": money_to_json(amount),
        "currencyCode": currency,
    }
    clean_customer = sanitize_customer(customer)
    if clean_customer:
        claims["customer"] = clean_customer
    clean_products = sanitize_products(products)
    if clean_products:
        claims["products"] = clean_products
    claims.update(summary_flags(summary))
    return claims


def build_refund_body(
    payment_id: str,
    amount: Decimal,
    currency: str,
    is_ach: Optional[bool] = None,
) -> dict[str, Any]:
    """Refund request. There is intentionally no reason field."""
    body: dict[str, Any] = {
        "paymentId": payment_id,
        "amount": {"amount": money_to_json(amount), "currency": currency},
    }
    if is_ach is not None:
        body["isACH"] = bool(is_ach)
    return body


def build_payment_search_body(
    transaction_id: Optional[str] = None,
    order_id: Optional[str] = None,
) -> dict[str, Any]:
    body: dict[str, Any] = {}
    if transaction_id:
        body["transactionId"] = transaction_id
    if order_id:
        body["orderId"] = order_id
    return body


def build_merchant_status_body(token: str) -> dict[str, Any]:
    return {"jwt": token}
