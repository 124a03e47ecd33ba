import asyncio

import pytest

from core.settings import GatewayPaths


PATHS = GatewayPaths()


def _seed(store, doc_id, doc):
    asyncio.run(store.set("orders", doc_id, doc))


def test_health_is_not_cached(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
    assert resp.headers["cache-control"] == "no-store"
    assert resp.headers["x-request-id"]


def test_request_id_is_echoed(client):
    resp = client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert resp.headers["x-request-id"] == "abc-123"


def test_merchant_status_passes_gateway_body_through(client, stub):
    stub.on(PATHS.merchant_status, json_body={"applePayEnabled": True, "googlePayEnabled": False, "mid": "m"})
    resp = client.get("/getEmbeddedMerchantStatus")
    assert resp.status_code == 200
    assert resp.json() == {"applePayEnabled": True, "googlePayEnabled": False, "mid": "m"}


def test_merchant_status_degrades_to_disabled_wallets(client, stub):
    stub.on(PATHS.merchant_status, status=502, text="bad gateway")
    resp = client.get("/getEmbeddedMerchantStatus")
    assert resp.status_code == 200
    assert resp.json() == {"applePayEnabled": False, "googlePayEnabled": False}


def test_create_embedded_jwt(client):
    resp = client.post("/createEmbeddedJwt", json={"amount": 25, "currency": "USD"})
    assert resp.status_code == 200
    body = resp.json()
    assert set(body) == {"jwt", "exp", "embeddedBase", "env"}
    assert body["env"] == "sandbox"
    assert body["embeddedBase"] == "https://payments2.deluxe.com"


@pytest.mark.parametrize("payload", [{}, {"amount": 0}, {"amount": "ten"}])
def test_create_embedded_jwt_invalid_amount(client, payload):
    resp = client.post("/createEmbeddedJwt", json=payload)
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid-amount"


def test_non_object_body_is_invalid_request(client):
    resp = client.post("/createEmbeddedJwt", content=b"[1]", headers={"content-type": "application/json"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid-request"


def test_create_payment_missing_order_id(client):
    resp = client.post("/createDeluxePayment", json={})
    assert resp.status_code == 400
    assert resp.json()["error"] == "missing-order-id"


def test_create_payment_unknown_order_is_404_without_gateway_call(client, stub):
    resp = client.post("/createDeluxePayment", json={"orderId": "nope"})
    assert resp.status_code == 404
    assert resp.json()["error"] == "order-not-found"
    assert stub.requests == []


def test_create_payment_returns_link(client, stub, store, pending_order):
    _seed(store, "o1", pending_order())
    stub.on(PATHS.payment_links, json_body={"paymentUrl": "https://pay/1", "paymentLinkId": "L1"})
    resp = client.post("/createDeluxePayment", json={"orderId": "o1", "successUrl": "https://x/ok"})
    assert resp.status_code == 200
    assert resp.json() == {"paymentUrl": "https://pay/1", "paymentLinkId": "L1"}


def test_create_payment_relays_gateway_status(client, stub, store, pending_order):
    _seed(store, "o1", pending_order())
    stub.on(PATHS.payment_links, status=422, json_body={"errors": ["amount"]})
    resp = client.post("/createDeluxePayment", json={"orderId": "o1"})
    assert resp.status_code == 422
    body = resp.json()
    assert body["error"] == "paymentlinks-failed"
    assert body["status"] == 422
    assert body["body"] == {"errors": ["amount"]}


def test_create_payment_without_payment_url_is_502(client, stub, store, pending_order):
    _seed(store, "o1", pending_order())
    stub.on(PATHS.payment_links, json_body={"paymentLinkId": "L1"})
    resp = client.post("/createDeluxePayment", json={"orderId": "o1"})
    assert resp.status_code == 502
    assert resp.json()["error"] == "no-payment-url"


def test_create_payment_oauth_failure_is_500(client, stub, store, pending_order):
    _seed(store, "o1", pending_order())
    stub.on(PATHS.oauth_token, status=401, json_body={"error": "invalid_client"})
    resp = client.post("/createDeluxePayment", json={"orderId": "o1"})
    assert resp.status_code == 500
    assert resp.json()["error"] == "gateway-auth-failed"
    assert stub.calls(PATHS.payment_links) == []


def test_refund_missing_identifiers(client):
    resp = client.post("/refundDeluxePayment", json={"amount": 5})
    assert resp.status_code == 400
    assert resp.json()["error"] == "missing-identifiers"


def test_refund_payment_not_found_is_404(client, stub, store, pending_order):
    _seed(store, "o1", pending_order())
    stub.on(PATHS.payment_search, json_body={"payments": []})
    resp = client.post("/refundDeluxePayment", json={"amount": 5, "orderId": "o1"})
    assert resp.status_code == 404
    body = resp.json()
    assert body["error"] == "payment-not-found"
    assert body["searchRequest"] == {"orderId": "o1"}


def test_refund_debug_flag_short_circuits(client, stub):
    resp = client.post("/refundDeluxePayment?debug=1", json={"amount": 5, "paymentId": "P1"})
    assert resp.status_code == 200
    assert resp.json() == {
        "debug": True,
        "resolvedPaymentId": "P1",
        "request": {"paymentId": "P1", "amount": {"amount": 5.0, "currency": "USD"}},
    }
    assert stub.requests == []


def test_refund_success_is_enriched(client, stub):
    stub.on(PATHS.refunds, json_body={"refundId": "R1"}, headers={"x-correlation-id": "c-1"})
    resp = client.post("/refundDeluxePayment", json={"amount": 5, "paymentId": "P1"})
    assert resp.status_code == 200
    assert resp.json() == {"refundId": "R1", "resolvedPaymentId": "P1", "correlationId": "c-1"}


def test_webhook_marks_order_paid(client, store, pending_order):
    _seed(store, "o1", pending_order())
    resp = client.post("/deluxe/webhook", json={"orderData": {"orderId": "o1"}, "status": "Approved"})
    assert resp.status_code == 200
    assert resp.json() == {"ok": True}
    assert asyncio.run(store.get("orders", "o1"))["status"] == "paid"
    assert store.dump("availability")["2025-11-01"]["huntersBooked"] == 2


def test_webhook_always_acknowledges(client):
    resp = client.post("/deluxe/webhook", content=b"garbage", headers={"content-type": "application/json"})
    assert resp.status_code == 200
    assert resp.json() == {"ok": False}

    resp = client.post("/deluxe/webhook", json={"status": "Approved"})
    assert resp.status_code == 200
    assert resp.json() == {"ok": True}


def test_cors_allows_preview_hosts(client):
    resp = client.options(
        "/createEmbeddedJwt",
        headers={"Origin": "https://ranch-git-main.vercel.app", "Access-Control-Request-Method": "POST"},
    )
    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] in {"*", "https://ranch-git-main.vercel.app"}


def test_api_prefix_is_applied(context, app_settings):
    from fastapi.testclient import TestClient
    from main import create_app

    context.settings = app_settings.model_copy(update={"API_PREFIX": "/api"})
    prefixed = TestClient(create_app(context))
    assert prefixed.get("/api/health").status_code == 200
    assert prefixed.get("/health").status_code == 404


def _allowlisted_client(context, trusted_proxy_hops=0):
    from fastapi.testclient import TestClient
    from core.settings import WebhookSettings
    from main import create_app

    context.gateway_settings = context.gateway_settings.model_copy(
        update={"webhook": WebhookSettings(ip_allowlist=["10.0.0.0/8"])}
    )
    context.settings = context.settings.model_copy(update={"TRUSTED_PROXY_HOPS": trusted_proxy_hops})
    return TestClient(create_app(context))


def test_webhook_allowlist_ignores_client_supplied_forwarded_for(context, store, pending_order):
    _seed(store, "o1", pending_order())
    client = _allowlisted_client(context)

    resp = client.post(
        "/deluxe/webhook",
        json={"orderData": {"orderId": "o1"}, "status": "Approved"},
        headers={"X-Forwarded-For": "10.1.2.3"},
    )

    assert resp.status_code == 200
    assert resp.json() == {"ok": False}
    assert asyncio.run(store.get("orders", "o1"))["status"] == "pending"
    assert store.dump("availability") == {}


def test_webhook_allowlist_uses_hop_appended_by_trusted_proxy(context, store, pending_order):
    _seed(store, "o1", pending_order())
    client = _allowlisted_client(context, trusted_proxy_hops=1)
    event = {"orderData": {"orderId": "o1"}, "status": "Approved"}

    spoofed = client.post("/deluxe/webhook", json=event, headers={"X-Forwarded-For": "10.1.2.3, 203.0.113.9"})
    assert spoofed.json() == {"ok": False}
    assert asyncio.run(store.get("orders", "o1"))["status"] == "pending"

    relayed = client.post("/deluxe/webhook", json=event, headers={"X-Forwarded-For": "203.0.113.9, 10.1.2.3"})
    assert relayed.json() == {"ok": True}
    assert asyncio.run(store.get("orders", "o1"))["status"] == "paid"
