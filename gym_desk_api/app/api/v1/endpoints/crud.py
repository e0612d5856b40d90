"""
Router factory for collections that expose plain CRUD.

Query parameters named after the service's ``filter_fields`` are
applied as exact-match filters; ``search``, ``page``, ``limit``,
``sort_by`` and ``order`` behave as on the member list.
"""

from typing import Any, Dict, Optional, Type

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel

from ....core.security import get_current_user
from ....services.base import CollectionService
from ..deps import service
from ..responses import ok


def build_crud_router(
    service_cls: Type[CollectionService],
    create_schema: Type[BaseModel],
    update_schema: Type[BaseModel],
    router: Optional[APIRouter] = None,
) -> APIRouter:
    router = router or APIRouter()
    get_service = service(service_cls)
    label = service_cls.label

    @router.get("")
    async def list_records(
        request: Request,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
        sort_by: Optional[str] = None,
        order: str = "asc",
        records: CollectionService = Depends(get_service),
        current_user: dict = Depends(get_current_user),
    ) -> Dict[str, Any]:
        filters = {key: request.query_params.get(key) for key in service_cls.filter_fields}
        rows, pagination = await records.list(
            filters=filters, search=search, page=page, limit=limit, sort_by=sort_by, order=order
        )
        return ok(rows, pagination=pagination)

    @router.post("", status_code=status.HTTP_201_CREATED)
    async def create_record(
        payload: create_schema,
        records: CollectionService = Depends(get_service),
        current_user: dict = Depends(get_current_user),
    ) -> Dict[str, Any]:
        return ok(await records.create(payload), message=f"{label} created successfully")

    @router.get("/{record_id}")
    async def get_record(
        record_id: str,
        records: CollectionService = Depends(get_service),
        current_user: dict = Depends(get_current_user),
    ) -> Dict[str, Any]:
        return ok(await records.get(record_id))

    @router.put("/{record_id}")
    async def update_record(
        record_id: str,
        payload: update_schema,
        records: CollectionService = Depends(get_service),
        current_user: dict = Depends(get_current_user),
    ) -> Dict[str, Any]:
        return ok(await records.update(record_id, payload), message=f"{label} updated successfully")

    @router.delete("/{record_id}")
    async def delete_record(
        record_id: str,
        records: CollectionService = Depends(get_service),
        current_user: dict = Depends(get_current_user),
    ) -> Dict[str, Any]:
        await records.delete(record_id)
        return ok(message=f"{label} deleted successfully")

    return router
