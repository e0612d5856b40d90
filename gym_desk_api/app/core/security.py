"""
Bearer-token authentication stub.

Every route except ``/health`` depends on :func:`get_current_user`.
The scheme is intentionally minimal and is NOT a security design: in
demo mode any bearer token of at least ten characters is accepted and
mapped to a single owner account.  When ``API_TOKEN`` is configured the
presented token must match it exactly.  Replace this module with real
token issuance and verification before any deployment.
"""

import hmac
import logging
from typing import Dict, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

MIN_TOKEN_LENGTH = 10

DEMO_USER: Dict[str, str] = {"id": "1", "role": "owner", "name": "Demo User"}

security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def verify_token(token: str, app_settings: Settings) -> bool:
    """Return True if ``token`` is accepted by the stub scheme."""
    if app_settings.api_token:
        return hmac.compare_digest(token.encode("utf-8"), app_settings.api_token.encode("utf-8"))
    return len(token) >= MIN_TOKEN_LENGTH


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Dict[str, str]:
    """Dependency that authenticates the request.

    Raises HTTP 401 when the ``Authorization`` header is missing or the
    token is rejected.  On success returns the demo owner record.
    """
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Access token required")
    app_settings = getattr(request.app.state, "settings", default_settings)
    if not verify_token(credentials.credentials, app_settings):
        logger.warning("Rejected bearer token for %s", request.url.path)
        raise _unauthorized("Invalid token")
    return dict(DEMO_USER)
