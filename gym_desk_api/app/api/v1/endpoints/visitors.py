"""Visitor endpoints for API v1."""

from ....schemas.visitor import VisitorCreate, VisitorUpdate
from ....services.visitor_service import VisitorService
from .crud import build_crud_router

router = build_crud_router(VisitorService, VisitorCreate, VisitorUpdate)
