"""
Base payment client implementing shared concerns: http, logging, response parsing.

Gateway calls are single-attempt: no retry and no backoff here. The caller,
or the gateway's own webhook redelivery, is the retry boundary.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Optional
from contextlib import asynccontextmanager

import httpx

from core.logging_config import get_logger
from infrastructure.external.payments.exceptions import UpstreamUnavailable


logger = get_logger(__name__)


@dataclass
class GatewayResponse:
    """Tolerantly parsed gateway response (JSON when possible, else raw text)."""

    status_code: int
    text: str
    data: Any = None
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def body(self) -> Any:
        """Parsed JSON, or the raw text when the body was not JSON."""
        return self.data if self.data is not None else self.text

    def pick(self, *names: str) -> Any:
        """First present top-level field among ``names`` (gateways disagree on casing)."""
        if not isinstance(self.data, dict):
            return None
        for name in names:
            value = self.data.get(name)
            if value not in (None, ""):
                return value
        return None

    @classmethod
    def from_httpx(cls, resp: httpx.Response) -> "GatewayResponse":
        text = resp.text
        data: Any = None
        if text:
            try:
                data = json.loads(text)
            except ValueError:
                data = None
        return cls(
            status_code=resp.status_code,
            text=text,
            data=data,
            headers={k.lower(): v for k, v in resp.headers.items()},
        )


class BasePaymentClient:
    provider: str = "base"

    def __init__(
        self,
        *,
        timeouts: Optional[dict[str, float]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._timeouts_cfg = timeouts or {"connect": 5.0, "read": 20.0, "write": 20.0, "total": 30.0}
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def timeouts(self) -> httpx.Timeout:
        return httpx.Timeout(
            connect=self._timeouts_cfg["connect"],
            read=self._timeouts_cfg["read"],
            write=self._timeouts_cfg["write"],
            timeout=self._timeouts_cfg["total"],
        )

    @asynccontextmanager
    async def client(self):
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeouts, transport=self._transport)
        try:
            yield self._client
        finally:
            # Keep open for reuse within this request; aclose() releases it.
            ...

    async def aclose(self) -> None:
        """Close underlying HTTP client if created."""
        if self._client is not None:
            try:
                await self._client.aclose()
            finally:
                self._client = None

    async def _post(
        self,
        operation: str,
        url: str,
        *,
        json_body: Any = None,
        form: Optional[dict[str, str]] = None,
        headers: Optional[dict[str, str]] = None,
        auth: Optional[httpx.Auth | tuple[str, str]] = None,
    ) -> GatewayResponse:
        request_headers = {"Accept": "application/json", **(headers or {})}
        async with self.client() as http:
            try:
                resp = await http.post(url, json=json_body, data=form, headers=request_headers, auth=auth)
            except httpx.TransportError as exc:
                self._log("gateway_unreachable", operation=operation, url=url, error=str(exc))
                raise UpstreamUnavailable(operation, provider=self.provider, reason=type(exc).__name__) from exc
        result = GatewayResponse.from_httpx(resp)
        self._log(
            "gateway_call",
            operation=operation,
            url=url,
            status=result.status_code,
        )
        return result

    def _log(self, event: str, **kwargs) -> None:
        logger.info(
            event,
            provider=self.provider,
            **kwargs,
        )
