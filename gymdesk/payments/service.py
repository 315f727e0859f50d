"""Payment service: member charges and their settlement state."""

import secrets
import time
from datetime import datetime, timezone
from typing import Optional

from gymdesk.config import settings
from gymdesk.store import CONTRACTS, MEMBERS, PAYMENTS
from gymdesk.store.service import RecordService
from gymdesk.utils.exceptions import DuplicateError, NotFoundError, ValidationError


def generate_payment_reference() -> str:
    return f"PAY-{int(time.time() * 1000)}-{secrets.token_hex(3).upper()}"


class PaymentService(RecordService):
    entity = PAYMENTS
    label = "Payment"
    search_fields = ("payment_reference", "description", "external_payment_id")

    async def prepare_create(self, data: dict) -> dict:
        if not await self.store.get(MEMBERS, data["member_id"]):
            raise NotFoundError("Member not found")
        if data.get("contract_id"):
            contract = await self.store.get(CONTRACTS, data["contract_id"])
            if not contract:
                raise NotFoundError("Contract not found")
            if contract.get("member_id") != data["member_id"]:
                raise ValidationError("Contract does not belong to this member")

        reference = data.get("payment_reference") or generate_payment_reference()
        if await self.store.find_one(PAYMENTS, {"payment_reference": reference}):
            raise DuplicateError(f"Payment reference '{reference}' already exists")
        data["payment_reference"] = reference
        data["currency"] = (data.get("currency") or settings.default_currency).upper()

        if data.get("status") == "paid" and not data.get("paid_date"):
            data["paid_date"] = datetime.now(timezone.utc)
        data["metadata"] = {"webhook_events": []}
        return data

    async def prepare_update(self, changes: dict, current: dict) -> dict:
        if changes.get("status") == "paid" and current.get("status") != "paid":
            changes.setdefault("paid_date", datetime.now(timezone.utc))
        return changes

    async def generate_for_contract(
        self,
        contract_id: str,
        amount: Optional[float] = None,
        payment_type: str = "membership",
        due_date=None,
        description: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> dict:
        """Create a pending charge for a contract, defaulting to its monthly fee."""
        contract = await self.store.get(CONTRACTS, contract_id)
        if not contract:
            raise NotFoundError("Contract not found")

        amount = amount or float(contract.get("monthly_fee") or 0)
        if amount <= 0:
            raise ValidationError("amount is required when the contract has no monthly fee")

        return await self.create(
            {
                "member_id": contract["member_id"],
                "contract_id": contract_id,
                "amount": amount,
                "payment_type": payment_type,
                "status": "pending",
                "due_date": due_date or datetime.now(timezone.utc),
                "payment_method": contract.get("payment_method") or "transfer",
                "description": description
                or f"Payment for {contract.get('contract_type', 'standard')} membership",
            },
            created_by=created_by,
        )
