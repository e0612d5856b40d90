"""Unauthenticated health check used by replicas as a capability probe."""

from typing import Any, Dict

from fastapi import APIRouter, Request

from ....core.rules import timestamp
from ..responses import ok

router = APIRouter()


@router.get("/health")
async def health(request: Request) -> Dict[str, Any]:
    app_settings = request.app.state.settings
    return ok({"status": "ok", "version": app_settings.api_version, "time": timestamp()})
