"""
Request ID middleware.

Forwards or generates ``X-Request-ID``, resolves the caller's address and binds
both to the structlog context for the rest of the request.
"""
import uuid
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

import structlog


def resolve_client_ip(forwarded_for: Optional[str], peer: Optional[str], trusted_hops: int = 0) -> Optional[str]:
    """Caller address as seen by the last trusted proxy.

    Each trusted proxy appends the address it received the request from, so
    the caller is ``trusted_hops`` entries from the right of
    ``X-Forwarded-For``. Entries further left are supplied by the client and
    never used. With no trusted proxies the socket peer is the caller.
    """
    if trusted_hops <= 0 or not forwarded_for:
        return peer
    hops = [h.strip() for h in forwarded_for.split(",") if h.strip()]
    if len(hops) < trusted_hops:
        return peer
    return hops[-trusted_hops]


class RequestIDMiddleware(BaseHTTPMiddleware):
    HEADER_NAME = "X-Request-ID"

    def __init__(self, app, trusted_proxy_hops: int = 0):
        super().__init__(app)
        self.trusted_proxy_hops = trusted_proxy_hops

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(self.HEADER_NAME) or str(uuid.uuid4())
        client_ip = resolve_client_ip(
            request.headers.get("X-Forwarded-For"),
            request.client.host if request.client else None,
            self.trusted_proxy_hops,
        )

        request.state.request_id = request_id
        request.state.client_ip = client_ip

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            client_ip=client_ip,
            method=request.method,
            path=request.url.path,
        )

        response = await call_next(request)
        response.headers[self.HEADER_NAME] = request_id
        return response
