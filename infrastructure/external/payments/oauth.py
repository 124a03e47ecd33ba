"""
Client-credentials OAuth exchange for the gateway's transactional endpoints.

The bearer token is never cached: each orchestrated operation calls
``acquire()`` again, so a stale token can never be replayed.
"""
from __future__ import annotations

from typing import Optional

import httpx

from domain.common.exceptions import ConfigurationError
from infrastructure.external.payments.base import BasePaymentClient
from infrastructure.external.payments.exceptions import UpstreamAuthError, UpstreamProtocolError


class GatewayOAuthClient:
    def __init__(
        self,
        http: BasePaymentClient,
        *,
        token_url: str,
        client_id: Optional[str],
        client_secret: Optional[str],
    ) -> None:
        self._http = http
        self._token_url = token_url
        self._client_id = client_id
        self._client_secret = client_secret

    async def acquire(self) -> str:
        if not self._client_id:
            raise ConfigurationError("DELUXE__CLIENT_ID")
        if not self._client_secret:
            raise ConfigurationError("DELUXE__CLIENT_SECRET")
        resp = await self._http._post(
            "oauth_token",
            self._token_url,
            form={"grant_type": "client_credentials"},
            auth=httpx.BasicAuth(self._client_id, self._client_secret),
        )
        if not resp.ok:
            raise UpstreamAuthError(resp.status_code, resp.body, provider=self._http.provider)
        token = resp.pick("access_token")
        if not token:
            raise UpstreamProtocolError(
                "OAuth: missing access_token",
                provider=self._http.provider,
                error_type="missing-access-token",
                status_code=500,
            )
        return str(token)
