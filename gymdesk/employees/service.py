"""Employee service: staff records, access levels and salary visibility."""

from gymdesk.rbac import Permission, get_role_display_name, normalize_role
from gymdesk.store import EMPLOYEES
from gymdesk.store.service import RecordService
from gymdesk.utils.exceptions import DuplicateError

HIDDEN_FIELDS = ("password_hash",)


class EmployeeService(RecordService):
    entity = EMPLOYEES
    label = "Employee"
    search_fields = (
        "first_name",
        "paternal_last_name",
        "maternal_last_name",
        "email",
        "employee_code",
    )

    async def _check_email(self, email: str, exclude_id: str | None = None) -> None:
        existing = await self.store.find_one(EMPLOYEES, {"email": email})
        if existing and existing["id"] != exclude_id:
            raise DuplicateError(f"Employee with email '{email}' already exists")

    async def prepare_create(self, data: dict) -> dict:
        data["email"] = data["email"].strip().lower()
        data["access_level"] = normalize_role(data.get("access_level")).value
        data["has_login"] = False
        await self._check_email(data["email"])
        return data

    async def prepare_update(self, changes: dict, current: dict) -> dict:
        if "access_level" in changes:
            changes["access_level"] = normalize_role(changes["access_level"]).value
        if changes.get("email"):
            changes["email"] = changes["email"].strip().lower()
            if changes["email"] != current.get("email"):
                await self._check_email(changes["email"], exclude_id=current["id"])
        return changes

    def present(self, record: dict, subject=None) -> dict:
        """Strip secrets; salary only for callers allowed to see it."""
        data = {k: v for k, v in record.items() if k not in HIDDEN_FIELDS}
        if subject is None or not subject.has(Permission.VIEW_EMPLOYEE_SALARIES):
            data.pop("salary", None)
        level = normalize_role(data.get("access_level"))
        data["access_level"] = level.value
        data["access_level_display"] = get_role_display_name(level)
        return data
