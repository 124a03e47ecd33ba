"""
Global exception handlers mapping business exceptions to HTTP responses.
"""
from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.exceptions import RequestValidationError
from starlette import status as http_status
import traceback

from .response import error_response
from shared.codes import BusinessCode
from core.logging_config import get_logger
from domain.common.exceptions import BusinessException


def _business_code_to_http_status(code: int) -> int:
    """Map a business code to an HTTP status (default 400)."""
    mapping = {
        BusinessCode.PARAM_ERROR: http_status.HTTP_400_BAD_REQUEST,
        BusinessCode.PARAM_MISSING: http_status.HTTP_400_BAD_REQUEST,
        BusinessCode.PARAM_VALIDATION_ERROR: http_status.HTTP_400_BAD_REQUEST,
        BusinessCode.BUSINESS_ERROR: http_status.HTTP_400_BAD_REQUEST,
        BusinessCode.NOT_FOUND: http_status.HTTP_404_NOT_FOUND,
        BusinessCode.SYSTEM_ERROR: http_status.HTTP_500_INTERNAL_SERVER_ERROR,
        BusinessCode.CONFIGURATION_ERROR: http_status.HTTP_500_INTERNAL_SERVER_ERROR,
    }
    try:
        return mapping.get(BusinessCode(code), http_status.HTTP_400_BAD_REQUEST)
    except ValueError:
        # Gateway codes (6xxxx) carry their own status_code
        return http_status.HTTP_500_INTERNAL_SERVER_ERROR


def http_status_for(exc: BusinessException) -> int:
    return exc.status_code or _business_code_to_http_status(exc.code)


def register_exception_handlers(app: FastAPI):
    """
    Register the global exception handlers.

    Args:
        app: FastAPI application instance
    """

    logger = get_logger(__name__)

    def _request_id(request: Request):
        return getattr(getattr(request, "state", object()), "request_id", None)

    @app.exception_handler(BusinessException)
    async def business_exception_handler(request: Request, exc: BusinessException):
        status_code = http_status_for(exc)
        log = logger.error if status_code >= 500 else logger.info
        log(
            "business_exception",
            error_type=exc.error_type,
            status=status_code,
            message=exc.message,
        )
        return error_response(
            status_code,
            exc.error_type,
            exc.message,
            details=exc.details,
            field=exc.field,
            request_id=_request_id(request),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first_error = errors[0] if errors else {}
        field = ".".join(str(loc) for loc in first_error.get("loc", [])[1:])
        return error_response(
            http_status.HTTP_400_BAD_REQUEST,
            "invalid-request",
            f"Validation failed: {first_error.get('msg', 'unknown')}",
            details={"errors": errors},
            field=field or None,
            request_id=_request_id(request),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return error_response(
            exc.status_code,
            "http-error",
            str(exc.detail),
            request_id=_request_id(request),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        details = None
        if app.debug:
            details = {
                "exception": str(exc),
                "traceback": traceback.format_exc(),
            }
        logger.error(
            "unhandled_exception",
            request_id=_request_id(request),
            error=str(exc),
            exc_info=True,
        )
        return error_response(
            http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            "internal-error",
            str(exc) or "Internal server error",
            details=details,
            request_id=_request_id(request),
        )
