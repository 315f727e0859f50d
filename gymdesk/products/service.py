"""Product service: inventory for the front-desk shop."""

from typing import Optional

from gymdesk.store import PRODUCTS, utcnow
from gymdesk.store.service import RecordService
from gymdesk.utils import Logger
from gymdesk.utils.exceptions import ValidationError

logger = Logger("products.service")


def margin_percent(price: Optional[float], cost: Optional[float]) -> Optional[float]:
    if not price or not cost:
        return None
    return round((price - cost) / price * 100, 2)


def stock_status(stock: int, current: Optional[str] = None) -> str:
    if stock <= 0:
        return "out_of_stock"
    if current in (None, "out_of_stock"):
        return "active"
    return current


class ProductService(RecordService):
    entity = PRODUCTS
    label = "Product"
    search_fields = ("name", "brand", "product_id", "category")

    async def _next_product_id(self) -> str:
        number = await self.store.count(PRODUCTS) + 1
        while await self.store.find_one(PRODUCTS, {"product_id": f"PROD{number:04d}"}):
            number += 1
        return f"PROD{number:04d}"

    async def prepare_create(self, data: dict) -> dict:
        data["product_id"] = await self._next_product_id()
        data["margin"] = margin_percent(data.get("price"), data.get("cost"))
        if not data.get("status") or data["stock"] <= 0:
            data["status"] = stock_status(data["stock"], data.get("status"))
        return data

    async def prepare_update(self, changes: dict, current: dict) -> dict:
        if "price" in changes or "cost" in changes:
            changes["margin"] = margin_percent(
                changes.get("price", current.get("price")),
                changes.get("cost", current.get("cost")),
            )
        if "stock" in changes and "status" not in changes:
            changes["status"] = stock_status(changes["stock"], current.get("status"))
        return changes

    async def adjust_stock(self, product_id: str, delta: int, reason: Optional[str] = None) -> dict:
        """Add or remove units; stock never goes below zero."""
        product = await self.get(product_id)
        stock = int(product.get("stock") or 0) + delta
        if stock < 0:
            raise ValidationError(
                f"Insufficient stock for '{product.get('name')}'",
                details={"available": int(product.get("stock") or 0), "requested": -delta},
            )
        updated = await self.store.update(
            PRODUCTS,
            product_id,
            {"stock": stock, "status": stock_status(stock, product.get("status"))},
            append={"stock_movements": {"delta": delta, "reason": reason, "at": utcnow()}},
        )
        logger.info(f"Stock of {product_id} adjusted by {delta} ({reason or 'no reason'})")
        return updated
