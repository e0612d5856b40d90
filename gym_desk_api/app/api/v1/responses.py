"""Response envelopes used by every v1 endpoint."""

from decimal import Decimal
from typing import Any, Dict, Optional

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel


def _encode(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    return jsonable_encoder(value, custom_encoder={Decimal: str})


def ok(data: Any = None, pagination: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    """Build the success envelope ``{"success": true, "data": ...}``."""
    body: Dict[str, Any] = {"success": True, "data": _encode(data)}
    if pagination is not None:
        body["pagination"] = _encode(pagination)
    if message:
        body["message"] = message
    return body


def failure(code: str, message: str, details: Any = None) -> Dict[str, Any]:
    """Build the failure envelope ``{"success": false, "error": {...}}``."""
    error: Dict[str, Any] = {"code": code, "message": message}
    if details:
        error["details"] = _encode(details)
    return {"success": False, "error": error}
