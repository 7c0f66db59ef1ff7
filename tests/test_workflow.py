import logging

import pytest

from modules.emergency import workflow
from modules.shared.errors import RecordNotFound, StoreUnavailable
from modules.shared.store import EMERGENCIES, REQUESTORS, RESPONDERS, USERS


class TestAssignResponder:

    async def test_assignment_links_both_records(self, store, seeded):
        e_id, r_id = seeded["emergency"]["id"], seeded["medic"]["id"]

        assert await workflow.assign_responder(store, e_id, r_id) is True

        emergency = store.row(EMERGENCIES, e_id)
        responder = store.row(RESPONDERS, r_id)
        assert emergency["status"] == "responding"
        assert emergency["responder_id"] == r_id
        assert emergency["responder"] == "Dr. Maria Santos"
        assert emergency["updated_at"] != "2026-10-17T08:00:00+00:00"
        assert responder["status"] == "responding"
        assert responder["responding_to"] == e_id

    async def test_unknown_responder_writes_nothing(self, store, seeded):
        before = {t: dict(rows) for t, rows in store.tables.items()}

        assert await workflow.assign_responder(store, seeded["emergency"]["id"], "no-such-responder") is False

        assert store.tables == before
        assert not [c for c in store.calls if c[0] == "update"]

    async def test_unknown_emergency_writes_nothing(self, store, seeded):
        r_id = seeded["medic"]["id"]

        assert await workflow.assign_responder(store, "no-such-emergency", r_id) is False

        assert store.row(RESPONDERS, r_id)["status"] == "available"
        assert store.row(RESPONDERS, r_id)["responding_to"] is None

    async def test_failed_emergency_write_rolls_back_responder(self, store, seeded):
        e_id, r_id = seeded["emergency"]["id"], seeded["medic"]["id"]
        store.fail_on("update", EMERGENCIES, StoreUnavailable("connection reset", EMERGENCIES))

        assert await workflow.assign_responder(store, e_id, r_id) is False

        assert store.row(RESPONDERS, r_id)["status"] == "available"
        assert store.row(RESPONDERS, r_id)["responding_to"] is None
        assert store.row(EMERGENCIES, e_id)["status"] == "pending"

    async def test_reassignment_frees_previous_responder(self, store, seeded):
        e_id = seeded["emergency"]["id"]
        medic_id, police_id = seeded["medic"]["id"], seeded["police"]["id"]
        await workflow.assign_responder(store, e_id, medic_id)

        assert await workflow.assign_responder(store, e_id, police_id) is True

        assert store.row(RESPONDERS, medic_id)["status"] == "available"
        assert store.row(RESPONDERS, medic_id)["responding_to"] is None
        assert store.row(RESPONDERS, police_id)["responding_to"] == e_id
        assert store.row(EMERGENCIES, e_id)["responder_id"] == police_id

    async def test_busy_responder_is_still_assigned(self, store, seeded, caplog):
        r_id = seeded["medic"]["id"]
        store.tables[RESPONDERS][r_id]["status"] = "unavailable"

        with caplog.at_level(logging.WARNING, logger="emergency.workflow"):
            assert await workflow.assign_responder(store, seeded["emergency"]["id"], r_id) is True

        assert "assigning anyway" in caplog.text


class TestUpdateEmergencyStatus:

    async def test_resolve_frees_assigned_responder(self, store, seeded):
        e_id, r_id = seeded["emergency"]["id"], seeded["medic"]["id"]
        await workflow.assign_responder(store, e_id, r_id)

        assert await workflow.update_emergency_status(store, e_id, "resolved") is True

        assert store.row(EMERGENCIES, e_id)["status"] == "resolved"
        assert store.row(RESPONDERS, r_id)["status"] == "available"
        assert store.row(RESPONDERS, r_id)["responding_to"] is None

    async def test_resolve_without_responder_only_touches_emergency(self, store, seeded):
        e_id = seeded["emergency"]["id"]
        responders_before = {k: dict(v) for k, v in store.tables[RESPONDERS].items()}

        assert await workflow.update_emergency_status(store, e_id, "resolved") is True

        assert store.row(EMERGENCIES, e_id)["status"] == "resolved"
        assert store.tables[RESPONDERS] == responders_before

    async def test_reopen_leaves_responder_alone(self, store, seeded):
        e_id, r_id = seeded["emergency"]["id"], seeded["medic"]["id"]
        await workflow.assign_responder(store, e_id, r_id)
        await workflow.update_emergency_status(store, e_id, "resolved")
        responder_after_resolve = store.row(RESPONDERS, r_id)

        assert await workflow.update_emergency_status(store, e_id, "pending") is True

        assert store.row(EMERGENCIES, e_id)["status"] == "pending"
        assert store.row(RESPONDERS, r_id) == responder_after_resolve

    async def test_mark_responding_manually(self, store, seeded):
        e_id = seeded["emergency"]["id"]

        assert await workflow.update_emergency_status(store, e_id, "responding") is True

        assert store.row(EMERGENCIES, e_id)["status"] == "responding"
        assert store.row(EMERGENCIES, e_id)["responder_id"] is None

    async def test_resolve_skips_responder_moved_elsewhere(self, store, seeded):
        e_id, r_id = seeded["emergency"]["id"], seeded["medic"]["id"]
        await workflow.assign_responder(store, e_id, r_id)
        store.tables[RESPONDERS][r_id]["responding_to"] = "another-emergency"

        assert await workflow.update_emergency_status(store, e_id, "resolved") is True

        assert store.row(RESPONDERS, r_id)["status"] == "responding"

    async def test_re_resolve_leaves_unavailable_responder_alone(self, store, seeded):
        e_id, r_id = seeded["emergency"]["id"], seeded["medic"]["id"]
        await workflow.assign_responder(store, e_id, r_id)
        await workflow.update_emergency_status(store, e_id, "resolved")
        store.tables[RESPONDERS][r_id]["status"] = "unavailable"
        await workflow.update_emergency_status(store, e_id, "pending")

        assert await workflow.update_emergency_status(store, e_id, "resolved") is True

        assert store.row(RESPONDERS, r_id)["status"] == "unavailable"

    async def test_missing_emergency_returns_false(self, store, seeded):
        assert await workflow.update_emergency_status(store, "missing", "resolved") is False

    async def test_failed_responder_release_rolls_back_status(self, store, seeded):
        e_id, r_id = seeded["emergency"]["id"], seeded["medic"]["id"]
        await workflow.assign_responder(store, e_id, r_id)
        store.fail_on("update", RESPONDERS, StoreUnavailable("timeout", RESPONDERS))

        assert await workflow.update_emergency_status(store, e_id, "resolved") is False

        assert store.row(EMERGENCIES, e_id)["status"] == "responding"
        assert store.row(RESPONDERS, r_id)["status"] == "responding"


class TestDeleteEmergency:

    async def test_delete_frees_assigned_responder(self, store, seeded):
        e_id, r_id = seeded["emergency"]["id"], seeded["medic"]["id"]
        await workflow.assign_responder(store, e_id, r_id)

        assert await workflow.delete_emergency(store, e_id) == r_id

        assert e_id not in store.tables[EMERGENCIES]
        assert store.row(RESPONDERS, r_id)["status"] == "available"
        assert store.row(RESPONDERS, r_id)["responding_to"] is None

    async def test_delete_unassigned_touches_no_responder(self, store, seeded):
        assert await workflow.delete_emergency(store, seeded["emergency"]["id"]) is None
        assert not [c for c in store.calls if c == ("update", RESPONDERS)]

    async def test_failed_delete_keeps_responder_bound(self, store, seeded):
        e_id, r_id = seeded["emergency"]["id"], seeded["medic"]["id"]
        await workflow.assign_responder(store, e_id, r_id)
        store.fail_on("delete", EMERGENCIES, StoreUnavailable("connection reset", EMERGENCIES))

        with pytest.raises(StoreUnavailable):
            await workflow.delete_emergency(store, e_id)

        assert store.row(RESPONDERS, r_id)["responding_to"] == e_id
        assert store.row(EMERGENCIES, e_id)["responder_id"] == r_id

    async def test_delete_unknown_raises_not_found(self, store, seeded):
        with pytest.raises(RecordNotFound):
            await workflow.delete_emergency(store, "missing")


class TestListEmergenciesWithDisplay:

    async def test_reporter_resolved_from_requestor_profile(self, store, seeded):
        records = await workflow.list_emergencies_with_display(store)

        assert len(records) == 1
        record = records[0]
        assert record["requestor_name"] == "Juan Dela Cruz"
        assert record["requestor_phone"] == "09174445555"
        assert record["location"] == {"lat": 9.63, "lng": 124.09}
        assert record["requestor_image"].endswith(seeded["reporter"]["id"])

    async def test_requestors_fetched_once(self, store, seeded):
        for i in range(3):
            store.add(EMERGENCIES, user_id=seeded["reporter"]["id"], type="fire", description=f"fire {i}",
                      status="pending", priority="low", reported_at=f"2026-10-17T09:0{i}:00+00:00")

        await workflow.list_emergencies_with_display(store)

        assert store.calls.count(("list", REQUESTORS)) == 1

    async def test_falls_back_to_user_record(self, store):
        user = store.add(USERS, name="Walk In", email="walkin@example.com", phone="0999", role="requestor")
        store.add(EMERGENCIES, user_id=user["id"], type="other", description="", status="pending", priority="low")

        records = await workflow.list_emergencies_with_display(store)

        assert records[0]["requestor_name"] == "Walk In"
        assert records[0]["requestor_phone"] == "0999"

    async def test_unknown_reporter_and_defaults(self, store):
        store.add(EMERGENCIES, user_id="ghost", type="fire", description=None, location="not a place",
                  address=None, status="pending", priority="high")

        record = (await workflow.list_emergencies_with_display(store))[0]

        assert record["requestor_name"] == "Unknown User"
        assert record["address"] == "Unknown location"
        assert record["location"] == {"lat": 9.6282, "lng": 124.0935}
        assert record["description"] == ""

    async def test_newest_first(self, store, seeded):
        newer = store.add(EMERGENCIES, user_id=seeded["reporter"]["id"], type="fire", description="newer",
                          status="pending", priority="low", reported_at="2026-10-17T10:00:00+00:00")

        records = await workflow.list_emergencies_with_display(store)

        assert [r["id"] for r in records] == [newer["id"], seeded["emergency"]["id"]]

    async def test_unreachable_backend_returns_empty_list(self, store, seeded, caplog):
        store.fail_on("list", EMERGENCIES, StoreUnavailable("connection refused", EMERGENCIES))

        with caplog.at_level(logging.ERROR, logger="emergency.workflow"):
            records = await workflow.list_emergencies_with_display(store)

        assert records == []
        assert "Error fetching emergencies" in caplog.text

    async def test_requestor_failure_degrades_to_user_names(self, store, seeded):
        store.fail_on("list", REQUESTORS, StoreUnavailable("connection refused", REQUESTORS))

        records = await workflow.list_emergencies_with_display(store)

        assert records[0]["requestor_name"] == "Juan Dela Cruz"


async def test_create_emergency_defaults(store, seeded):
    created = await workflow.create_emergency(store, {
        "user_id": seeded["reporter"]["id"],
        "type": "fire",
        "description": "Grass fire",
        "location": {"lat": 9.6, "lng": 124.1},
        "address": "Zone 3",
    })

    row = store.row(EMERGENCIES, created["id"])
    assert row["status"] == "pending"
    assert row["priority"] == "medium"
    assert row["reported_at"] == row["updated_at"]
