"""Sale service: POS checkout: line pricing, discounts and stock."""

import secrets
from typing import Optional

from gymdesk.products.service import ProductService
from gymdesk.rbac import Permission
from gymdesk.store import MEMBERS, PRODUCTS, SALES
from gymdesk.store.service import RecordService
from gymdesk.utils import Logger
from gymdesk.utils.exceptions import NotFoundError, PermissionDenied, ValidationError

logger = Logger("sales.service")

WALK_IN_CUSTOMER = "Cliente General"
REVERSED_STATUSES = ("refunded", "cancelled")


class SaleService(RecordService):
    entity = SALES
    label = "Sale"
    search_fields = ("transaction_id", "customer_name", "customer_email")

    async def _price_lines(self, items: list[dict], subject) -> list[dict]:
        lines = []
        for item in items:
            if item.get("product_id"):
                if not subject.has(Permission.REGISTER_PRODUCT_SALES):
                    raise PermissionDenied("Insufficient permissions to sell products")
                product = await self.store.get(PRODUCTS, item["product_id"])
                if not product or product.get("status") in ("inactive", "discontinued"):
                    raise NotFoundError(f"Product '{item['product_id']}' not found")
                available = int(product.get("stock") or 0)
                if available < item["quantity"]:
                    raise ValidationError(
                        f"Insufficient stock for '{product.get('name')}'",
                        details={"available": available, "requested": item["quantity"]},
                    )
                unit_price = float(product["price"])
                name = product.get("name")
            else:
                if not subject.has(Permission.REGISTER_SERVICE_SALES):
                    raise PermissionDenied("Insufficient permissions to sell services")
                unit_price = float(item["unit_price"])
                name = item["name"]

            lines.append(
                {
                    "product_id": item.get("product_id"),
                    "product_name": name,
                    "quantity": item["quantity"],
                    "unit_price": unit_price,
                    "total_price": round(unit_price * item["quantity"], 2),
                }
            )
        return lines

    async def register_sale(self, data: dict, subject) -> dict:
        """
        1. Price every line (products at their catalogue price, stock checked).
        2. Apply the discount; only roles with ``apply_discounts`` may.
        3. Store the sale, then take the sold units out of stock.
        """
        discount = float(data.get("discount") or 0)
        if discount > 0 and not subject.has(Permission.APPLY_DISCOUNTS):
            raise PermissionDenied("Insufficient permissions to apply discounts")

        lines = await self._price_lines(data["items"], subject)
        subtotal = round(sum(line["total_price"] for line in lines), 2)
        discount = min(discount, subtotal)

        customer = data.get("customer") or {}
        member = None
        if data.get("member_id"):
            member = await self.store.get(MEMBERS, data["member_id"])
            if not member:
                raise NotFoundError("Member not found")
        member_name = (
            " ".join(p for p in (member.get("first_name"), member.get("paternal_last_name")) if p)
            if member
            else None
        )

        transaction_id = f"txn_{secrets.token_hex(5)}"
        sale = await self.create(
            {
                "items": lines,
                "subtotal": subtotal,
                "discount": discount,
                "total_amount": round(subtotal - discount, 2),
                "payment_method": data["payment_method"],
                "payment_details": data.get("payment_details"),
                "payment_status": "completed",
                "status": "completed",
                "sale_type": "product" if any(line["product_id"] for line in lines) else "service",
                "member_id": data.get("member_id"),
                "customer_name": customer.get("name") or member_name or WALK_IN_CUSTOMER,
                "customer_email": customer.get("email") or (member or {}).get("email"),
                "customer_phone": customer.get("phone"),
                "employee_id": subject.employee_id,
                "transaction_id": transaction_id,
                "notes": data.get("notes"),
            },
            created_by=subject.employee_id,
        )

        products = ProductService(self.store)
        for line in lines:
            if line["product_id"]:
                await products.adjust_stock(
                    line["product_id"], -line["quantity"], reason=f"sale {transaction_id}"
                )
        logger.info(f"Sale {transaction_id} registered: {sale['total_amount']}")
        return sale

    async def prepare_update(self, changes: dict, current: dict) -> dict:
        """Refunding or cancelling a completed sale puts its units back in stock."""
        status = changes.get("status")
        if not status or status == current.get("status"):
            return changes
        if current.get("status") in REVERSED_STATUSES:
            raise ValidationError("Sale has already been reversed")
        if status in REVERSED_STATUSES:
            products = ProductService(self.store)
            for line in current.get("items") or []:
                if line.get("product_id"):
                    await products.adjust_stock(
                        line["product_id"],
                        int(line["quantity"]),
                        reason=f"sale {current.get('transaction_id')} {status}",
                    )
            changes["payment_status"] = status
        return changes

    async def delete(self, record_id: str) -> dict:
        sale = await self.get(record_id)
        if sale.get("status") not in REVERSED_STATUSES:
            raise ValidationError("Only refunded or cancelled sales can be deleted")
        return await super().delete(record_id)


def sale_total(sale: Optional[dict]) -> float:
    if not sale or sale.get("status") in REVERSED_STATUSES:
        return 0.0
    return float(sale.get("total_amount") or 0)
