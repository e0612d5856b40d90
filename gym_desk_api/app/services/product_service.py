"""
Business logic for the supplement store.

``margin`` and ``profit`` are derived on every write.  Sales decrease
the stock and increase ``units_sold`` atomically; a sale larger than
the stock raises ``InvalidStateError``.
"""

import logging
from typing import Any, Dict

from ..core.errors import InvalidStateError
from ..core.rules import product_margins, utc_now
from ..schemas.product import ProductCreate, ProductRead, ProductSale, ProductUpdate
from .activity_service import record_activity
from .base import CollectionService

logger = logging.getLogger(__name__)


class ProductService(CollectionService):
    table = "products"
    label = "Product"
    activity_type = "product"

    create_schema = ProductCreate
    update_schema = ProductUpdate
    read_schema = ProductRead

    search_columns = ("name", "supplier_name")
    sort_fields = ("name", "created_at", "expiry_date", "quantity_in_stock", "units_sold")
    default_sort = "name"

    def prepare_create(self, tx, record):
        record["units_sold"] = 0
        return product_margins(record)

    def prepare_update(self, tx, current, record, changes):
        return product_margins(record)

    def sell(self, tx, product_id: str, sale: ProductSale) -> Dict[str, Any]:
        product = self.require(tx, self.table, product_id, self.label)
        if product["quantity_in_stock"] < sale.units:
            raise InvalidStateError(
                f"Insufficient stock: {product['quantity_in_stock']} available, {sale.units} requested"
            )
        record = {
            **product,
            "quantity_in_stock": product["quantity_in_stock"] - sale.units,
            "units_sold": product["units_sold"] + sale.units,
            "updated_at": utc_now(),
        }
        stored = self.to_stored(product_margins(record))
        tx.update(self.table, product_id, stored)
        record_activity(tx, self.activity_type, "Product sold", product["name"], details=f"{sale.units} units")
        return stored

    async def record_sale(self, product_id: str, payload: Any) -> Dict[str, Any]:
        sale = self.parse(ProductSale, payload)
        with self.repository.transaction(immediate=True) as tx:
            stored = self.sell(tx, product_id, sale)
        logger.info("Sold %s units of product %s", sale.units, product_id)
        return stored
