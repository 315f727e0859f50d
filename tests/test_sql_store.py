import importlib
from typing import List, get_type_hints

import pytest

from gymdesk.store import MEMBERS, PAYMENTS, PRODUCTS, MongoEntityStore, SqlEntityStore
from gymdesk.store.base import EntityStore, check_entity


async def _member(store, **fields):
    data = {
        "first_name": "Ana",
        "paternal_last_name": "López",
        "email": "ana@gymdesk.mx",
        "status": "active",
    }
    data.update(fields)
    return await store.create(MEMBERS, data)


async def test_create_assigns_id_and_timestamps(store):
    member = await _member(store)
    assert member["id"]
    assert member["is_deleted"] is False
    assert member["created_at"] is not None
    assert member["updated_at"] is not None
    assert await store.get(MEMBERS, member["id"]) == member


async def test_get_unknown_id(store):
    assert await store.get(MEMBERS, "missing") is None


async def test_update_merges_fields(store):
    member = await _member(store, city="Monterrey")
    updated = await store.update(MEMBERS, member["id"], {"status": "inactive"})

    assert updated["status"] == "inactive"
    assert updated["city"] == "Monterrey"
    assert updated["first_name"] == "Ana"


async def test_update_unknown_id_returns_none(store):
    assert await store.update(MEMBERS, "missing", {"status": "inactive"}) is None


async def test_update_dotted_path_and_append(store):
    payment = await store.create(
        PAYMENTS, {"payment_reference": "PAY-1", "status": "pending", "metadata": {"webhook_events": []}}
    )
    await store.update(PAYMENTS, payment["id"], {}, append={"metadata.webhook_events": {"n": 1}})
    updated = await store.update(
        PAYMENTS,
        payment["id"],
        {"metadata.source": "gateway"},
        append={"metadata.webhook_events": {"n": 2}},
    )

    assert updated["metadata"]["webhook_events"] == [{"n": 1}, {"n": 2}]
    assert updated["metadata"]["source"] == "gateway"


async def test_conditional_update_is_skipped(store):
    payment = await store.create(PAYMENTS, {"payment_reference": "PAY-2", "status": "paid"})

    skipped = await store.update(
        PAYMENTS, payment["id"], {"status": "paid", "note": "again"}, unless={"status": "paid"}
    )
    assert skipped is None
    assert "note" not in await store.get(PAYMENTS, payment["id"])

    applied = await store.update(
        PAYMENTS, payment["id"], {"status": "refunded"}, unless={"status": "refunded"}
    )
    assert applied["status"] == "refunded"


async def test_soft_delete_hides_record(store):
    member = await _member(store)
    assert await store.delete(MEMBERS, member["id"]) is True
    assert await store.get(MEMBERS, member["id"]) is None
    assert await store.count(MEMBERS) == 0
    assert await store.delete(MEMBERS, member["id"]) is False


async def test_filters_on_columns_and_attributes(store):
    await _member(store, email="a@gymdesk.mx", selected_plan="monthly")
    await _member(store, email="b@gymdesk.mx", selected_plan="annual", status="inactive")
    await _member(store, email="c@gymdesk.mx", selected_plan="monthly", status="suspended")

    assert await store.count(MEMBERS, {"status": "active"}) == 1
    assert await store.count(MEMBERS, {"selected_plan": "monthly"}) == 2
    assert await store.count(MEMBERS, {"status": ["inactive", "suspended"]}) == 2

    found = await store.find_one(MEMBERS, {"email": "b@gymdesk.mx"})
    assert found["selected_plan"] == "annual"


async def test_search_is_case_insensitive(store):
    await _member(store, first_name="Valeria", email="v@gymdesk.mx")
    await _member(store, first_name="Carlos", email="c@gymdesk.mx")

    page = await store.list(MEMBERS, search="VALER", search_fields=("first_name", "email"))
    assert page.total == 1
    assert page.items[0]["first_name"] == "Valeria"


async def test_pagination_and_sorting(store):
    for n in range(5):
        await store.create(PRODUCTS, {"name": f"Product {n}", "category": "supplements"})

    first = await store.list(PRODUCTS, limit=2, offset=0, sort="name", descending=False)
    last = await store.list(PRODUCTS, limit=2, offset=4, sort="name", descending=False)

    assert first.total == 5
    assert [p["name"] for p in first.items] == ["Product 0", "Product 1"]
    assert [p["name"] for p in last.items] == ["Product 4"]


async def test_list_all_walks_every_page(store):
    for n in range(7):
        await _member(store, email=f"m{n}@gymdesk.mx")

    records = await store.list_all(MEMBERS, batch_size=3)
    assert len(records) == 7
    assert len({r["id"] for r in records}) == 7


@pytest.mark.parametrize("store_class", [EntityStore, SqlEntityStore, MongoEntityStore])
def test_store_annotations_resolve(store_class):
    hints = get_type_hints(store_class.list_all)
    assert hints["return"] == List[dict]
    assert "return" in get_type_hints(store_class.list)


def test_app_module_imports():
    module = importlib.import_module("gymdesk.app")
    assert module.app.title


async def test_dates_survive_in_attributes(store):
    member = await _member(store, start_date="2024-02-01T00:00:00+00:00")
    assert (await store.get(MEMBERS, member["id"]))["start_date"].startswith("2024-02-01")


async def test_ping(store):
    assert await store.ping() is True


def test_unknown_entity_is_rejected():
    with pytest.raises(ValueError):
        check_entity("invoices")
