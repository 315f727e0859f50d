"""Schedule service: group classes and member bookings."""

from gymdesk.store import EMPLOYEES, MEMBERS, SCHEDULE, utcnow
from gymdesk.store.service import RecordService
from gymdesk.utils import as_datetime
from gymdesk.utils.exceptions import ConflictError, DuplicateError, NotFoundError, ValidationError


class ScheduleService(RecordService):
    entity = SCHEDULE
    label = "Class"
    search_fields = ("class_name", "class_type", "instructor", "location")

    async def _instructor_name(self, employee_id: str) -> str:
        employee = await self.store.get(EMPLOYEES, employee_id)
        if not employee:
            raise NotFoundError("Instructor not found")
        return " ".join(
            p for p in (employee.get("first_name"), employee.get("paternal_last_name")) if p
        )

    async def prepare_create(self, data: dict) -> dict:
        if data.get("employee_id") and not data.get("instructor"):
            data["instructor"] = await self._instructor_name(data["employee_id"])
        data["current_bookings"] = 0
        data["bookings"] = []
        return data

    async def prepare_update(self, changes: dict, current: dict) -> dict:
        start = as_datetime(changes.get("start_time", current.get("start_time")))
        end = as_datetime(changes.get("end_time", current.get("end_time")))
        if start and end and end <= start:
            raise ValidationError("end_time must be after start_time")
        capacity = changes.get("max_capacity")
        if capacity is not None and capacity < int(current.get("current_bookings") or 0):
            raise ValidationError("max_capacity is below the number of current bookings")
        if changes.get("employee_id") and not changes.get("instructor"):
            changes["instructor"] = await self._instructor_name(changes["employee_id"])
        return changes

    async def book(self, class_id: str, member_id: str) -> dict:
        scheduled = await self.get(class_id)
        if scheduled.get("status") != "scheduled":
            raise ValidationError("Only scheduled classes can be booked")
        if not await self.store.get(MEMBERS, member_id):
            raise NotFoundError("Member not found")

        bookings = [b for b in scheduled.get("bookings") or [] if b.get("status") == "booked"]
        if any(b.get("member_id") == member_id for b in bookings):
            raise DuplicateError("Member is already booked into this class")
        if len(bookings) >= int(scheduled.get("max_capacity") or 0):
            raise ConflictError("Class is full")

        return await self.store.update(
            SCHEDULE,
            class_id,
            {"current_bookings": len(bookings) + 1},
            append={"bookings": {"member_id": member_id, "status": "booked", "booked_at": utcnow()}},
        )

    async def cancel_booking(self, class_id: str, member_id: str) -> dict:
        scheduled = await self.get(class_id)
        bookings = list(scheduled.get("bookings") or [])
        found = False
        for booking in bookings:
            if booking.get("member_id") == member_id and booking.get("status") == "booked":
                booking["status"] = "cancelled"
                booking["cancelled_at"] = utcnow()
                found = True
        if not found:
            raise NotFoundError("Booking not found")

        active = sum(1 for b in bookings if b.get("status") == "booked")
        return await self.store.update(
            SCHEDULE, class_id, {"bookings": bookings, "current_bookings": active}
        )
