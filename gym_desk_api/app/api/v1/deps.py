"""
FastAPI dependencies shared by the v1 endpoints.

The repository and settings live on ``app.state`` (set by
``create_app``); services are constructed per request around them.
"""

from typing import Callable, Type, TypeVar

from fastapi import Depends, Request

from ...core.config import Settings
from ...core.db import SQLiteRepository

ServiceT = TypeVar("ServiceT")


def get_repository(request: Request) -> SQLiteRepository:
    return request.app.state.repository


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def service(cls: Type[ServiceT]) -> Callable[..., ServiceT]:
    """Dependency factory returning an instance of ``cls`` for the request."""

    def _build(
        repository: SQLiteRepository = Depends(get_repository),
        app_settings: Settings = Depends(get_settings),
    ) -> ServiceT:
        return cls(repository, app_settings)

    return _build
