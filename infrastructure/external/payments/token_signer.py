"""
HS256 token signer for the gateway's embedded endpoints.

These tokens are issued by this service itself (not obtained from the
gateway): ``base64url(header).base64url(payload).base64url(HMAC-SHA256)``
with a fixed ``{"alg": "HS256", "typ": "JWT"}`` header. Each token carries the
merchant accessor credential plus explicit ``iat``/``exp`` and is generated
fresh per request.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional
import time

import jwt

from domain.common.exceptions import ConfigurationError


ALGORITHM = "HS256"


@dataclass(frozen=True)
class SignedToken:
    token: str
    iat: int
    exp: int


class TokenSigner:
    def __init__(
        self,
        secret: Optional[str],
        access_token: Optional[str],
        *,
        status_ttl: int = 300,
        session_ttl: int = 600,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._secret = secret
        self._access_token = access_token
        self._status_ttl = status_ttl
        self._session_ttl = session_ttl
        self._clock = clock

    def sign(self, payload: dict[str, Any]) -> str:
        if not self._secret:
            raise ConfigurationError("DELUXE__EMBEDDED_SECRET")
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM, headers={"typ": "JWT"})

    def _issue(self, ttl: int, claims: Optional[dict[str, Any]] = None) -> SignedToken:
        if not self._access_token:
            raise ConfigurationError("DELUXE__ACCESS_TOKEN")
        iat = int(self._clock())
        exp = iat + ttl
        payload: dict[str, Any] = {"accessToken": self._access_token, "iat": iat, "exp": exp}
        if claims:
            payload.update({k: v for k, v in claims.items() if k not in payload})
        return SignedToken(token=self.sign(payload), iat=iat, exp=exp)

    def status_probe_token(self) -> SignedToken:
        return self._issue(self._status_ttl)

    def session_token(self, claims: dict[str, Any]) -> SignedToken:
        """Embedded payment-session token; ``claims`` come from the request builders."""
        return self._issue(self._session_ttl, claims)
