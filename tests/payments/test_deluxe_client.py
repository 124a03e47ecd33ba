import json
from decimal import Decimal

import httpx
import jwt
import pytest

from core.settings import GatewayPaths, GatewaySettings
from domain.order.entity import Order
from infrastructure.external.payments.deluxe_client import DeluxeClient, extract_search_payment_id
from infrastructure.external.payments.exceptions import (
    UpstreamProtocolError,
    UpstreamRejection,
    UpstreamUnavailable,
)


PATHS = GatewayPaths()
DECODE_OPTIONS = {"verify_exp": False, "verify_iat": False}


def test_sandbox_switch_selects_both_hosts():
    sandbox = GatewaySettings(use_sandbox=True)
    production = GatewaySettings(use_sandbox=False)
    assert sandbox.gateway_url(PATHS.payment_links) == "https://sandbox.api.deluxe.com/dpp/v1/gateway/paymentlinks"
    assert sandbox.embedded_url(PATHS.merchant_status) == "https://payments2.deluxe.com/embedded/merchantStatus"
    assert production.gateway_url(PATHS.refunds) == "https://api.deluxe.com/dpp/v1/gateway/refunds"
    assert production.embedded_base == "https://payments.deluxe.com"
    assert (sandbox.environment, production.environment) == ("sandbox", "production")


@pytest.mark.asyncio
async def test_merchant_status_posts_signed_token_without_bearer(deluxe, stub):
    stub.on(PATHS.merchant_status, json_body={"applePayEnabled": True, "googlePayEnabled": False})
    status = await deluxe.merchant_status()
    assert status == {"applePayEnabled": True, "googlePayEnabled": False}

    request = stub.calls(PATHS.merchant_status)[0]
    assert request.url.host == "payments2.deluxe.com"
    assert "authorization" not in request.headers
    token = json.loads(request.content)["jwt"]
    claims = jwt.decode(token, "embedded-secret", algorithms=["HS256"], options=DECODE_OPTIONS)
    assert claims["exp"] - claims["iat"] == 300
    assert stub.calls(PATHS.oauth_token) == []


@pytest.mark.asyncio
async def test_merchant_status_non_success_is_rejection(deluxe, stub):
    stub.on(PATHS.merchant_status, status=500, text="boom")
    with pytest.raises(UpstreamRejection):
        await deluxe.merchant_status()


@pytest.mark.asyncio
async def test_transport_failure_is_unavailable(deluxe, stub):
    stub.fail(PATHS.merchant_status, httpx.ConnectTimeout("timed out"))
    with pytest.raises(UpstreamUnavailable) as exc_info:
        await deluxe.merchant_status()
    assert exc_info.value.error_type == "gateway-unreachable"


@pytest.mark.asyncio
async def test_payment_link_sends_bearer_and_partner_token(deluxe, stub):
    stub.on(PATHS.payment_links, json_body={"paymentUrl": "https://pay/abc", "paymentLinkId": "L1"})
    order = Order.from_document("o1", {"total": 150, "customer": {"name": "Solo"}})

    attempt = await deluxe.create_payment_link(order, success_url="https://x/ok")

    assert attempt.payment_url == "https://pay/abc"
    assert attempt.payment_link_id == "L1"
    request = stub.calls(PATHS.payment_links)[0]
    assert request.url.host == "sandbox.api.deluxe.com"
    assert request.headers["authorization"] == "Bearer bearer-1"
    assert request.headers["partnertoken"] == "partner-token"
    assert attempt.request == json.loads(request.content)
    assert attempt.request["lastName"] == "Customer"


@pytest.mark.asyncio
async def test_payment_link_rejection_relays_status_and_body(deluxe, stub):
    stub.on(PATHS.payment_links, status=422, json_body={"message": "bad amount"})
    with pytest.raises(UpstreamRejection) as exc_info:
        await deluxe.create_payment_link(Order.from_document("o1", {"total": 1}))
    exc = exc_info.value
    assert exc.status_code == 422
    assert exc.error_type == "paymentlinks-failed"
    assert exc.details["body"] == {"message": "bad amount"}


@pytest.mark.asyncio
async def test_payment_link_without_url_is_protocol_error(deluxe, stub):
    stub.on(PATHS.payment_links, json_body={"paymentLinkId": "L1"})
    with pytest.raises(UpstreamProtocolError) as exc_info:
        await deluxe.create_payment_link(Order.from_document("o1", {"total": 1}))
    assert exc_info.value.status_code == 502
    assert exc_info.value.error_type == "no-payment-url"


@pytest.mark.parametrize(
    "payload, expected",
    [
        ([{"paymentId": "P1"}, {"paymentId": "P2"}], "P1"),
        ({"payments": [{"PaymentId": "P3"}]}, "P3"),
        ({"data": [{"id": "P4"}]}, "P4"),
        ({"results": []}, None),
        ({"paymentId": "P5"}, "P5"),
        ([], None),
        ("not json", None),
    ],
)
def test_extract_search_payment_id(payload, expected):
    assert extract_search_payment_id(payload) == expected


@pytest.mark.asyncio
async def test_search_payment_returns_first_result(deluxe, stub):
    stub.on(PATHS.payment_search, json_body={"payments": [{"paymentId": "P9"}]})
    result = await deluxe.search_payment(transaction_id="T1")
    assert result.found
    assert result.payment_id == "P9"
    assert result.request == {"transactionId": "T1"}
    assert stub.calls(PATHS.payment_search)[0].headers["partnertoken"] == "partner-token"


@pytest.mark.asyncio
async def test_search_payment_failure_is_not_found_result(deluxe, stub):
    stub.on(PATHS.payment_search, status=500, json_body={"paymentId": "ignored"})
    result = await deluxe.search_payment(order_id="o1")
    assert not result.found
    assert result.status == 500
    assert result.response == {"paymentId": "ignored"}


@pytest.mark.asyncio
async def test_refund_returns_correlation_id_from_headers(deluxe, stub):
    stub.on(PATHS.refunds, json_body={"status": "Refunded"}, headers={"X-Correlation-Id": "corr-1"})
    body = deluxe.build_refund("P1", Decimal("10.00"), "USD")
    refund = await deluxe.refund(body)
    assert refund.correlation_id == "corr-1"
    assert refund.body == {"status": "Refunded"}
    assert stub.json_of(PATHS.refunds) == {"paymentId": "P1", "amount": {"amount": 10.0, "currency": "USD"}}


@pytest.mark.asyncio
async def test_refund_rejection_carries_resolution_details(deluxe, stub):
    stub.on(PATHS.refunds, status=409, json_body={"error": "already refunded", "requestId": "req-7"})
    with pytest.raises(UpstreamRejection) as exc_info:
        await deluxe.refund(deluxe.build_refund("P1", Decimal("10.00"), "USD"))
    details = exc_info.value.details
    assert exc_info.value.status_code == 409
    assert details["resolvedPaymentId"] == "P1"
    assert details["correlationId"] == "req-7"


def test_parse_webhook_prefers_order_data(deluxe):
    body = json.dumps(
        {
            "orderData": {"orderId": "o1"},
            "customData": [{"name": "orderId", "value": "other"}],
            "status": "Approved",
            "paymentId": "P1",
        }
    ).encode()
    event = deluxe.parse_webhook({}, body)
    assert (event.order_id, event.status, event.payment_id) == ("o1", "Approved", "P1")


def test_parse_webhook_scans_custom_data_and_nested_data(deluxe):
    body = json.dumps(
        {
            "type": "payment",
            "data": {
                "customData": [{"name": "email", "value": "x"}, {"name": "orderId", "value": "o2"}],
                "transactionStatus": "CAPTURED",
                "PaymentId": "P2",
            },
        }
    ).encode()
    event = deluxe.parse_webhook({}, body)
    assert (event.order_id, event.status, event.payment_id) == ("o2", "CAPTURED", "P2")


def test_parse_webhook_rejects_non_json(deluxe):
    with pytest.raises(UpstreamProtocolError):
        deluxe.parse_webhook({}, b"<xml/>")
    with pytest.raises(UpstreamProtocolError):
        deluxe.parse_webhook({}, b"[1, 2]")
