"""
Invoice endpoints for API v1.

Totals are always computed by the server from the line items; any
totals present in a request body are ignored.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, status

from ....core.security import get_current_user
from ....schemas.invoice import InvoiceCreate, InvoiceStatusUpdate, InvoiceUpdate
from ....services.invoice_service import InvoiceService
from ..deps import service
from ..responses import ok

router = APIRouter()

get_service = service(InvoiceService)


@router.get("")
async def list_invoices(
    status_filter: Optional[str] = Query(None, alias="status"),
    member_id: Optional[str] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
    sort_by: Optional[str] = None,
    order: str = "desc",
    invoices: InvoiceService = Depends(get_service),
    current_user: dict = Depends(get_current_user),
) -> Dict[str, Any]:
    """List invoices, newest first by default."""
    rows, pagination = await invoices.list(
        filters={"status": status_filter, "member_id": member_id},
        search=search,
        page=page,
        limit=limit,
        sort_by=sort_by,
        order=order,
    )
    return ok(rows, pagination=pagination)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_invoice(
    payload: InvoiceCreate,
    invoices: InvoiceService = Depends(get_service),
    current_user: dict = Depends(get_current_user),
) -> Dict[str, Any]:
    """Create an invoice with the next ``#MP`` number.  404 if the member is unknown."""
    return ok(await invoices.create(payload), message="Invoice created successfully")


@router.get("/summary")
async def invoice_summary(
    invoices: InvoiceService = Depends(get_service),
    current_user: dict = Depends(get_current_user),
) -> Dict[str, Any]:
    return ok(await invoices.summary())


@router.get("/{invoice_id}")
async def get_invoice(
    invoice_id: str,
    invoices: InvoiceService = Depends(get_service),
    current_user: dict = Depends(get_current_user),
) -> Dict[str, Any]:
    return ok(await invoices.get(invoice_id))


@router.put("/{invoice_id}")
async def update_invoice(
    invoice_id: str,
    payload: InvoiceUpdate,
    invoices: InvoiceService = Depends(get_service),
    current_user: dict = Depends(get_current_user),
) -> Dict[str, Any]:
    return ok(await invoices.update(invoice_id, payload), message="Invoice updated successfully")


@router.put("/{invoice_id}/status")
async def update_invoice_status(
    invoice_id: str,
    payload: InvoiceStatusUpdate,
    invoices: InvoiceService = Depends(get_service),
    current_user: dict = Depends(get_current_user),
) -> Dict[str, Any]:
    """Set ``pending``, ``paid`` or ``overdue``."""
    return ok(await invoices.update_status(invoice_id, payload), message="Invoice status updated")


@router.delete("/{invoice_id}")
async def delete_invoice(
    invoice_id: str,
    invoices: InvoiceService = Depends(get_service),
    current_user: dict = Depends(get_current_user),
) -> Dict[str, Any]:
    await invoices.delete(invoice_id)
    return ok(message="Invoice deleted successfully")
