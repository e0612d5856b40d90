"""
Training session endpoints for API v1.

Creating, updating or deleting a session refreshes the session
counters of the trainers involved.
"""

from ....schemas.session import SessionCreate, SessionUpdate
from ....services.session_service import SessionService
from .crud import build_crud_router

router = build_crud_router(SessionService, SessionCreate, SessionUpdate)
