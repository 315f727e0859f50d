"""Member service: gym members and their membership plan."""

from gymdesk.store import MEMBERS
from gymdesk.store.service import RecordService
from gymdesk.utils.exceptions import DuplicateError


class MemberService(RecordService):
    entity = MEMBERS
    label = "Member"
    search_fields = (
        "first_name",
        "paternal_last_name",
        "maternal_last_name",
        "email",
        "primary_phone",
    )

    async def _check_email(self, email: str, exclude_id: str | None = None) -> None:
        existing = await self.store.find_one(MEMBERS, {"email": email})
        if existing and existing["id"] != exclude_id:
            raise DuplicateError(f"Member with email '{email}' already exists")

    async def prepare_create(self, data: dict) -> dict:
        data["email"] = data["email"].strip().lower()
        await self._check_email(data["email"])
        return data

    async def prepare_update(self, changes: dict, current: dict) -> dict:
        if changes.get("email"):
            changes["email"] = changes["email"].strip().lower()
            if changes["email"] != current.get("email"):
                await self._check_email(changes["email"], exclude_id=current["id"])
        return changes
