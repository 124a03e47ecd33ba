"""Pytest bootstrap configuration.

Gateway traffic is served by ``httpx.MockTransport`` through ``GatewayStub``;
orders and availability live in the in-memory document store.
"""
import json
import os
from typing import Any, Callable, Optional

import httpx
import pytest

# Keep developer .env / shell secrets out of the tests
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("API_PREFIX", "")
os.environ.setdefault("STORE__BACKEND", "memory")

from application.context import AppContext  # noqa: E402
from core.config import Settings  # noqa: E402
from core.settings import GatewaySettings  # noqa: E402
from infrastructure.document_store import InMemoryDocumentStore  # noqa: E402


FIXED_NOW = 1_700_000_000

TOKEN_PATH = "/secservices/oauth2/v2/token"
LINKS_PATH = "/dpp/v1/gateway/paymentlinks"
REFUNDS_PATH = "/dpp/v1/gateway/refunds"
SEARCH_PATH = "/dpp/v1/gateway/payments/search"
MERCHANT_STATUS_PATH = "/embedded/merchantStatus"


class GatewayStub:
    """Routes requests by URL path and records everything it receives."""

    def __init__(self) -> None:
        self.routes: dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def on(
        self,
        path: str,
        status: int = 200,
        json_body: Any = None,
        text: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if text is not None:
                return httpx.Response(status, text=text, headers=headers)
            return httpx.Response(status, json=json_body if json_body is not None else {}, headers=headers)

        self.routes[path] = handler

    def fail(self, path: str, exc: Exception) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise exc

        self.routes[path] = handler

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get(request.url.path)
        if handler is None:
            return httpx.Response(404, json={"error": f"unrouted {request.url.path}"})
        return handler(request)

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def json_of(self, path: str, index: int = -1) -> Any:
        return json.loads(self.calls(path)[index].content)


@pytest.fixture
def gateway_settings() -> GatewaySettings:
    return GatewaySettings(
        use_sandbox=True,
        client_id="client-id",
        client_secret="client-secret",
        access_token="partner-token",
        embedded_secret="embedded-secret",
    )


@pytest.fixture
def stub() -> GatewayStub:
    gw = GatewayStub()
    gw.on(TOKEN_PATH, json_body={"access_token": "bearer-1", "expires_in": 3600})
    return gw


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def availability(store):
    """Read side of the capacity ledger."""
    from infrastructure.repositories.availability_repository import DocumentAvailabilityRepository

    return DocumentAvailabilityRepository(store)


@pytest.fixture
def app_settings() -> Settings:
    return Settings(API_PREFIX="", DEBUG=False)


@pytest.fixture
def context(app_settings, gateway_settings, store, stub) -> AppContext:
    return AppContext(
        settings=app_settings,
        gateway_settings=gateway_settings,
        store=store,
        clock=lambda: FIXED_NOW,
        http_transport=stub.transport,
    )


@pytest.fixture
def deluxe(gateway_settings, stub):
    from infrastructure.external.payments.deluxe_client import DeluxeClient

    return DeluxeClient(gateway_settings, transport=stub.transport, clock=lambda: FIXED_NOW)


@pytest.fixture
def client(context):
    from fastapi.testclient import TestClient
    from main import create_app

    return TestClient(create_app(context))


def _pending_order(**overrides) -> dict[str, Any]:
    doc: dict[str, Any] = {
        "total": 150.00,
        "currency": "USD",
        "status": "pending",
        "customer": {"name": "John Michael Smith", "email": "john@example.com"},
        "booking": {"dates": ["2025-11-01", "2025-11-02"], "numberOfHunters": 2},
    }
    doc.update(overrides)
    return doc


@pytest.fixture
def pending_order() -> Callable[..., dict[str, Any]]:
    """Factory for a pending order document (the o1 scenario by default)."""
    return _pending_order
