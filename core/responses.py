"""
Uniform response envelope used by every API route
"""
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from core.exceptions import FastCheckoutError, RateLimitError


def utc_timestamp() -> str:
    """ISO 8601 timestamp with millisecond precision and a Z suffix"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def create_api_response(
    success: bool,
    data: Any = None,
    error: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Create the standard envelope

    Members that carry no value are left out, so a success reply has no
    ``error`` key and an error reply has no ``data`` key.
    """
    envelope: Dict[str, Any] = {"success": success}
    if data is not None:
        envelope["data"] = data
    if error is not None:
        envelope["error"] = {k: v for k, v in error.items() if v is not None}
    envelope["timestamp"] = utc_timestamp()
    return envelope


def api_response(
    data: Any = None,
    status_code: int = 200,
    headers: Optional[Mapping[str, str]] = None,
) -> JSONResponse:
    """Successful envelope wrapped in a JSONResponse"""
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(create_api_response(True, data)),
        headers=dict(headers) if headers else None,
    )


def error_envelope_response(
    code: str,
    message: str,
    status_code: int,
    details: Any = None,
    headers: Optional[Mapping[str, str]] = None,
) -> JSONResponse:
    """Failed envelope wrapped in a JSONResponse"""
    error = {"code": code, "message": message, "details": details}
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(create_api_response(False, error=error)),
        headers=dict(headers) if headers else None,
    )


def error_response(exc: FastCheckoutError) -> JSONResponse:
    """Convert a FastCheckoutError into its envelope response"""
    headers = None
    if isinstance(exc, RateLimitError):
        headers = {"Retry-After": str(exc.retry_after)}

    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(create_api_response(False, error=exc.to_dict())),
        headers=headers,
    )
