"""
Supplement store endpoints for API v1.

``POST /products/{id}/sale`` records a sale; it fails with
``INVALID_STATE`` when the stock is insufficient.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from ....core.security import get_current_user
from ....schemas.product import ProductCreate, ProductSale, ProductUpdate
from ....services.product_service import ProductService
from ..deps import service
from ..responses import ok
from .crud import build_crud_router

router = APIRouter()


@router.post("/{product_id}/sale")
async def record_sale(
    product_id: str,
    payload: ProductSale,
    products: ProductService = Depends(service(ProductService)),
    current_user: dict = Depends(get_current_user),
) -> Dict[str, Any]:
    return ok(await products.record_sale(product_id, payload), message="Sale recorded")


build_crud_router(ProductService, ProductCreate, ProductUpdate, router=router)
