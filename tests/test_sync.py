import json

import pytest

from gymdesk.monday.sync import MondaySyncManager, SyncAction, SyncGuard
from gymdesk.store import CONTRACTS, MEMBERS, PAYMENTS
from gymdesk.utils.exceptions import (
    MondayAPIError,
    RemoteServiceUnavailable,
    SyncInProgressError,
    ValidationError,
)


@pytest.fixture
def guard():
    return SyncGuard()


@pytest.fixture
def sync(store, board_client, board_ids, guard):
    return MondaySyncManager(store, board_client, board_ids, guard=guard)


async def _member(store, email="ana@gymdesk.mx", sync_status="pending", **fields):
    data = {
        "first_name": "Ana",
        "paternal_last_name": "López",
        "email": email,
        "primary_phone": "5551234567",
        "status": "active",
        "sync_status": sync_status,
    }
    data.update(fields)
    return await store.create(MEMBERS, data)


def _board_member(item_id, name="Luis Pérez", email="luis@gymdesk.mx", status="Active"):
    return {
        "id": item_id,
        "name": name,
        "column_values": [
            {"id": "text", "text": name.split()[0], "value": None},
            {"id": "email", "text": email, "value": None},
            {"id": "status", "text": status, "value": json.dumps({"label": status})},
            {"id": "numbers", "text": "", "value": None},
        ],
    }


# ── Push ─────────────────────────────────────────────────────────
async def test_push_creates_item_and_marks_synced(sync, store, board_client):
    member = await _member(store)

    result = await sync.sync_member_to_monday(member["id"])

    assert result.success
    assert result.action == SyncAction.CREATED
    board, name, columns = board_client.created[0]
    assert board == "101"
    assert name == "Ana López"
    assert columns["email"] == "ana@gymdesk.mx"
    assert columns["status"] == {"label": "active"}

    stored = await store.get(MEMBERS, member["id"])
    assert stored["sync_status"] == "synced"
    assert stored["monday_item_id"] == result.monday_item_id
    assert stored["last_synced_at"]


async def test_push_updates_existing_item(sync, store, board_client):
    member = await _member(store, monday_item_id="777")

    result = await sync.sync_record_to_monday(MEMBERS, member["id"])

    assert result.action == SyncAction.UPDATED
    assert board_client.updated[0][1] == "777"
    assert board_client.created == []


async def test_failed_update_falls_back_to_create(sync, store, board_client):
    board_client.fail_updates = True
    member = await _member(store, monday_item_id="777")

    result = await sync.sync_record_to_monday(MEMBERS, member["id"])

    assert result.success
    assert result.action == SyncAction.CREATED
    assert (await store.get(MEMBERS, member["id"]))["monday_item_id"] == result.monday_item_id


async def test_push_failure_marks_record_error(sync, store, board_client):
    board_client.fail_names.add("Ana López")
    member = await _member(store)

    result = await sync.sync_record_to_monday(MEMBERS, member["id"])

    assert not result.success
    stored = await store.get(MEMBERS, member["id"])
    assert stored["sync_status"] == "error"
    assert "500" in stored["sync_error"]


async def test_push_unknown_record(sync):
    result = await sync.sync_record_to_monday(MEMBERS, "missing")
    assert not result.success
    assert result.action == SyncAction.SKIPPED
    assert result.error == "Member not found"


async def test_push_resolves_linked_records(sync, store, board_client):
    member = await _member(store, monday_item_id="900", sync_status="synced")
    contract = await store.create(
        CONTRACTS,
        {"member_id": member["id"], "contract_type": "monthly", "status": "active", "monthly_fee": 650},
    )

    await sync.sync_contract_to_monday(contract["id"])

    _, _, columns = board_client.created[0]
    assert columns["connect_boards"] == {"item_ids": ["900"]}
    assert columns["numbers"] == 650.0


async def test_batch_push_continues_after_failure(sync, store, board_client):
    await _member(store, email="a@gymdesk.mx", first_name="Ana")
    await _member(store, email="b@gymdesk.mx", first_name="Beto")
    await _member(store, email="c@gymdesk.mx", first_name="Caro", sync_status="error")
    await _member(store, email="d@gymdesk.mx", first_name="Dani", sync_status="synced")
    board_client.fail_names.add("Beto López")

    report = await sync.sync_entity_to_monday(MEMBERS)

    assert report.total_processed == 3
    assert report.successful == 2
    assert report.failed == 1
    assert await store.count(MEMBERS, {"sync_status": "synced"}) == 3
    assert await store.count(MEMBERS, {"sync_status": "error"}) == 1


async def test_batch_push_with_explicit_ids(sync, store):
    first = await _member(store, email="a@gymdesk.mx")
    await _member(store, email="b@gymdesk.mx")

    report = await sync.sync_entity_to_monday(MEMBERS, ids=[first["id"]])
    assert report.total_processed == 1


# ── Pull ─────────────────────────────────────────────────────────
async def test_pull_creates_missing_records_with_defaults(sync, store, board_client):
    board_client.add_item("101", _board_member("1"))

    report = await sync.sync_entity_from_monday(MEMBERS)

    assert report.successful == 1
    created = await store.find_one(MEMBERS, {"monday_item_id": "1"})
    assert created["email"] == "luis@gymdesk.mx"
    assert created["first_name"] == "Luis"
    assert created["paternal_last_name"] == "Pérez"
    assert created["primary_phone"] == "0000000000"
    assert created["sync_status"] == "synced"


async def test_pull_keeps_local_only_fields(sync, store, board_client):
    member = await _member(
        store, monday_item_id="1", sync_status="synced", notes="prefers mornings", city="León"
    )
    board_client.add_item("101", _board_member("1", email="new@gymdesk.mx", status="Suspended"))

    await sync.sync_entity_from_monday(MEMBERS)

    stored = await store.get(MEMBERS, member["id"])
    assert stored["email"] == "new@gymdesk.mx"
    assert stored["status"] == "suspended"
    assert stored["notes"] == "prefers mornings"
    assert stored["city"] == "León"
    assert await store.count(MEMBERS) == 1


async def test_pull_pages_through_the_board(sync, store, board_client):
    for n in range(5):
        board_client.add_item("101", _board_member(str(n), email=f"m{n}@gymdesk.mx"))

    report = await sync.sync_entity_from_monday(MEMBERS)

    assert report.total_processed == 5
    assert await store.count(MEMBERS) == 5


async def test_pull_translates_links_to_local_ids(sync, store, board_client):
    member = await _member(store, monday_item_id="900", sync_status="synced")
    board_client.add_item(
        "104",
        {
            "id": "55",
            "name": "Payment - membership - $650",
            "column_values": [
                {
                    "id": "connect_boards",
                    "text": "",
                    "value": json.dumps({"linkedPulseIds": [{"linkedPulseId": 900}]}),
                },
                {"id": "connect_boards__1", "text": "", "value": json.dumps({"linkedPulseIds": [{"linkedPulseId": 12345}]})},
                {"id": "numbers", "text": "650", "value": "\"650\""},
            ],
        },
    )

    await sync.sync_entity_from_monday(PAYMENTS)

    payment = await store.find_one(PAYMENTS, {"monday_item_id": "55"})
    assert payment["member_id"] == member["id"]
    assert "contract_id" not in payment
    assert payment["amount"] == 650.0


# ── Guard ────────────────────────────────────────────────────────
async def test_second_bulk_run_is_rejected(sync, guard):
    assert guard.try_acquire(MEMBERS)
    with pytest.raises(SyncInProgressError):
        await sync.sync_entity_to_monday(MEMBERS)
    with pytest.raises(SyncInProgressError):
        await sync.perform_full_bidirectional_sync()
    guard.release()


async def test_guard_is_released_after_run(sync, guard):
    await sync.sync_entity_to_monday(MEMBERS)
    assert not guard.in_progress
    assert sync.get_current_sync_entity() is None


async def test_guard_is_released_after_failure(store, board_client, guard):
    sync = MondaySyncManager(store, board_client, {}, guard=guard)
    with pytest.raises(RemoteServiceUnavailable):
        await sync.sync_entity_from_monday(MEMBERS)
    assert not guard.in_progress


async def test_unknown_sync_entity(sync):
    with pytest.raises(ValidationError):
        await sync.sync_entity_to_monday("products")


async def test_full_sync_reports_every_entity(sync, store, board_client):
    await _member(store)
    board_client.add_item("101", _board_member("1"))

    full = await sync.perform_full_bidirectional_sync()
    data = full.to_dict()

    assert set(full.reports) == {"members", "employees", "contracts", "payments"}
    assert data["members"]["direction"] == "bidirectional"
    assert data["failed"] == 0
    # push ran first, so the pushed member's new item is pulled back too
    assert data["members"]["total_processed"] == 3


async def test_full_sync_leg_failure_is_reported(sync, board_client, guard, monkeypatch):
    list_items = board_client.list_items

    async def failing_list_items(board_id, cursor=None):
        if board_id == "104":
            raise MondayAPIError("monday API error: 503")
        return await list_items(board_id, cursor)

    monkeypatch.setattr(board_client, "list_items", failing_list_items)

    full = await sync.perform_bidirectional_sync(["members", "payments"])

    assert full.reports["members"].error is None
    assert "503" in full.reports["payments"].error
    assert not guard.in_progress


async def test_full_sync_skips_entities_without_a_board(store, board_client, guard):
    sync = MondaySyncManager(store, board_client, {"members": "101"}, guard=guard)
    payment = await store.create(
        PAYMENTS, {"payment_reference": "PAY-9", "status": "pending", "sync_status": "pending"}
    )

    full = await sync.perform_full_bidirectional_sync()

    assert full.reports["payments"].skipped
    assert full.reports["payments"].error is None
    assert full.to_dict()["failed"] == 0
    assert board_client.created == []
    assert (await store.get(PAYMENTS, payment["id"]))["sync_status"] == "pending"


async def test_push_without_a_board_leaves_records_alone(store, board_client, guard):
    sync = MondaySyncManager(store, board_client, {"members": "101"}, guard=guard)
    payment = await store.create(
        PAYMENTS, {"payment_reference": "PAY-10", "status": "pending", "sync_status": "pending"}
    )

    with pytest.raises(RemoteServiceUnavailable):
        await sync.sync_entity_to_monday(PAYMENTS)

    assert (await store.get(PAYMENTS, payment["id"]))["sync_status"] == "pending"
    assert not guard.in_progress


# ── Board events ─────────────────────────────────────────────────
async def test_webhook_upsert_event(sync, store, board_client):
    board_client.add_item("101", _board_member("42"))

    result = await sync.handle_monday_webhook(
        {"event": {"type": "create_pulse", "pulseId": 42, "boardId": 101}}
    )

    assert result.success
    assert result.action == SyncAction.CREATED
    assert await store.find_one(MEMBERS, {"monday_item_id": "42"})


async def test_webhook_delete_event_soft_removes(sync, store):
    member = await _member(store, monday_item_id="42", sync_status="synced")
    payment = await store.create(PAYMENTS, {"monday_item_id": "43", "status": "pending"})

    await sync.handle_monday_webhook({"event": {"type": "delete_pulse", "pulseId": 42, "boardId": 101}})
    await sync.handle_monday_webhook({"type": "item_archived", "itemId": "43", "boardId": "104"})

    assert (await store.get(MEMBERS, member["id"]))["status"] == "inactive"
    assert (await store.get(PAYMENTS, payment["id"]))["status"] == "cancelled"


async def test_webhook_unmapped_board(sync):
    result = await sync.handle_monday_webhook({"event": {"type": "create_pulse", "pulseId": 1, "boardId": 999}})
    assert not result.success


async def test_webhook_unknown_event_type(sync):
    result = await sync.handle_monday_webhook({"event": {"type": "move_pulse", "pulseId": 1, "boardId": 101}})
    assert not result.success
    assert result.error == "Unknown event type"


# ── Status ───────────────────────────────────────────────────────
async def test_quiet_sync_skips_when_not_configured(store, board_client, board_ids, guard):
    sync = MondaySyncManager(store, board_client, board_ids, enabled=False, guard=guard)
    member = await _member(store)

    assert await sync.sync_record_quietly(MEMBERS, member["id"]) is None
    assert board_client.created == []


async def test_sync_stats(sync, store):
    await _member(store, email="a@gymdesk.mx")
    await _member(store, email="b@gymdesk.mx", sync_status="error")
    await _member(store, email="c@gymdesk.mx", sync_status="synced")

    stats = (await sync.get_sync_status())["stats"]["members"]
    assert stats == {"total": 3, "synced": 1, "pending": 1, "error": 1, "needing_sync": 2}


async def test_validate_connection(sync, board_client):
    assert await sync.validate_connection() is True
    board_client.connected = False
    assert await sync.validate_connection() is False
