"""Contract service: membership contracts tied to a member."""

from gymdesk.store import CONTRACTS, MEMBERS
from gymdesk.store.service import RecordService
from gymdesk.utils import as_datetime
from gymdesk.utils.exceptions import NotFoundError, ValidationError


class ContractService(RecordService):
    entity = CONTRACTS
    label = "Contract"
    search_fields = ("contract_type", "notes")

    async def prepare_create(self, data: dict) -> dict:
        if not await self.store.get(MEMBERS, data["member_id"]):
            raise NotFoundError("Member not found")
        return data

    async def prepare_update(self, changes: dict, current: dict) -> dict:
        start = as_datetime(changes.get("start_date", current.get("start_date")))
        end = as_datetime(changes.get("end_date", current.get("end_date")))
        if start and end and end < start:
            raise ValidationError("end_date must not be before start_date")
        return changes
