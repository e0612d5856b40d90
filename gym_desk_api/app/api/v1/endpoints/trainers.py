"""Trainer endpoints for API v1."""

from ....schemas.trainer import TrainerCreate, TrainerUpdate
from ....services.trainer_service import TrainerService
from .crud import build_crud_router

router = build_crud_router(TrainerService, TrainerCreate, TrainerUpdate)
