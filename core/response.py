"""
Response body helpers.

Browser callers read fields such as ``paymentUrl`` and ``jwt`` directly from
the top level, so success bodies are plain JSON objects (no envelope) and
error bodies are flat: ``{"error": <type>, "message": <text>, ...details}``.
"""
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def error_body(
    error_type: str,
    message: str,
    details: Optional[dict] = None,
    field: Optional[str] = None,
    request_id: Optional[str] = None,
) -> dict[str, Any]:
    """Build the flat error object; ``error``/``message`` are never overridden by details."""
    body: dict[str, Any] = {}
    if details:
        body.update(details)
    if field:
        body["field"] = field
    if request_id:
        body["requestId"] = request_id
    body["error"] = error_type
    body["message"] = message
    return body


def error_response(
    status_code: int,
    error_type: str,
    message: str,
    details: Optional[dict] = None,
    field: Optional[str] = None,
    request_id: Optional[str] = None,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(error_body(error_type, message, details, field, request_id)),
        headers=headers,
    )


def json_response(data: Any, status_code: int = 200, headers: Optional[dict[str, str]] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=jsonable_encoder(data), headers=headers)
