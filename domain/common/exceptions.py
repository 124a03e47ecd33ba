"""Domain-level business exceptions, shared by domain, application and infrastructure.

The core layer only maps these to HTTP responses; nothing here depends on it.
"""
from __future__ import annotations

from typing import Optional
from shared.codes import BusinessCode


class BusinessException(Exception):
    """Base business exception.

    ``error_type`` is the stable, machine-readable ``error`` string returned to
    callers (e.g. ``invalid-amount``). ``status_code`` overrides the HTTP status
    derived from ``code`` when set.
    """

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "business-error",
        details: Optional[dict] = None,
        field: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        self.status_code = status_code
        super().__init__(self.message)


class ValidationError(BusinessException):
    def __init__(
        self,
        error_type: str,
        message: str,
        *,
        field: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message=message,
            error_type=error_type,
            details=details,
            field=field,
        )


class NotFoundError(BusinessException):
    def __init__(self, error_type: str, message: str, *, details: dict | None = None):
        super().__init__(
            code=BusinessCode.NOT_FOUND,
            message=message,
            error_type=error_type,
            details=details,
        )


class ConfigurationError(BusinessException):
    """A required secret or setting is unavailable. Never retried."""

    def __init__(self, setting: str):
        super().__init__(
            code=BusinessCode.CONFIGURATION_ERROR,
            message=f"{setting} is not configured",
            error_type="configuration-error",
            details={"setting": setting},
        )


class InternalError(BusinessException):
    def __init__(self, error_type: str, message: str, *, details: dict | None = None):
        super().__init__(
            code=BusinessCode.SYSTEM_ERROR,
            message=message,
            error_type=error_type,
            details=details,
        )


class InvalidMoney(ValueError):
    """Raised by money normalization; callers translate it to a ValidationError."""
