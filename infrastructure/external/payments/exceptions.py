"""
Gateway exceptions mapped to unified BusinessException variants.
"""
from __future__ import annotations

from typing import Any, Optional
from domain.common.exceptions import BusinessException
from shared.codes.payment_codes import PaymentCode


class UpstreamAuthError(BusinessException):
    """The gateway's OAuth endpoint refused the client-credentials exchange."""

    def __init__(self, status: int, body: Any, *, provider: str):
        super().__init__(
            code=PaymentCode.UPSTREAM_AUTH_ERROR,
            message=f"OAuth failed ({status})",
            error_type="gateway-auth-failed",
            details={"provider": provider, "status": status, "body": body},
            status_code=500,
        )
        self.status = status
        self.body = body


class UpstreamProtocolError(BusinessException):
    """The gateway answered with success but without a required field."""

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        error_type: str = "gateway-protocol-error",
        response: Any = None,
        status_code: int = 502,
    ):
        super().__init__(
            code=PaymentCode.UPSTREAM_PROTOCOL_ERROR,
            message=message,
            error_type=error_type,
            details={"provider": provider, "response": response},
            status_code=status_code,
        )


class UpstreamRejection(BusinessException):
    """Non-success status from a transactional call; relayed to the caller as-is."""

    def __init__(
        self,
        error_type: str,
        *,
        status: int,
        body: Any,
        provider: str,
        details: Optional[dict] = None,
    ):
        full_details: dict[str, Any] = {"status": status, "body": body}
        if details:
            full_details.update(details)
        super().__init__(
            code=PaymentCode.UPSTREAM_REJECTED,
            message=f"{provider} returned {status}",
            error_type=error_type,
            details=full_details,
            status_code=status,
        )
        self.status = status
        self.body = body


class UpstreamUnavailable(BusinessException):
    """The gateway could not be reached (connect/read timeout, DNS, TLS)."""

    def __init__(self, operation: str, *, provider: str, reason: str):
        super().__init__(
            code=PaymentCode.UPSTREAM_UNAVAILABLE,
            message=f"{provider} {operation} unreachable: {reason}",
            error_type="gateway-unreachable",
            details={"provider": provider, "operation": operation},
            status_code=502,
        )
