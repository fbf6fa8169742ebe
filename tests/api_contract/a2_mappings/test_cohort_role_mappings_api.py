from __future__ import annotations

import uuid

import pytest

from tests.factories import assign_role, make_cohort, make_role


@pytest.fixture()
def seeded(db):
    u1, u2, u3 = (uuid.uuid4() for _ in range(3))
    manager = make_role(db, shortname="manager")
    mentor = make_role(db, shortname="mentor", assignable_at_user_scope=True)
    c1 = make_cohort(db, members=[u1, u2, u3])
    c2 = make_cohort(db)
    assign_role(db, user_id=u1, role_id=manager.id)
    db.commit()
    return {"u1": u1, "u2": u2, "u3": u3, "manager": manager, "mentor": mentor, "c1": c1, "c2": c2}


def _create(client, headers, seeded, cohorts):
    return client.post(
        "/cohort-role-mappings",
        json={
            "marker_role_id": str(seeded["manager"].id),
            "target_role_id": str(seeded["mentor"].id),
            "cohort_ids": [str(c.id) for c in cohorts],
        },
        headers=headers,
    )


def test_create_list_count_delete(client, headers, seeded):
    r = _create(client, headers, seeded, [seeded["c1"], seeded["c2"]])
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["saved"] == 2
    assert body["skipped_cohort_ids"] == []

    r = client.get("/cohort-role-mappings/count", headers=headers)
    assert r.json() == {"count": 2}

    r = client.get("/cohort-role-mappings", params={"limit": 1}, headers=headers)
    assert r.status_code == 200, r.text
    assert len(r.json()) == 1
    row = r.json()[0]
    assert row["marker_role_name"] == "Manager"
    assert row["target_role_name"] == "Mentor"
    assert row["cohort_name"] in (seeded["c1"].name, seeded["c2"].name)

    mapping_id = body["created"][0]["id"]
    r = client.delete(f"/cohort-role-mappings/{mapping_id}", headers=headers)
    assert r.status_code == 200, r.text
    assert r.json() == {"ok": True}

    r = client.delete(f"/cohort-role-mappings/{mapping_id}", headers=headers)
    assert r.status_code == 404, r.text


def test_create_duplicate_is_skipped_not_an_error(client, headers, seeded):
    _create(client, headers, seeded, [seeded["c1"]])

    r = _create(client, headers, seeded, [seeded["c1"]])
    assert r.status_code == 201, r.text
    assert r.json()["saved"] == 0
    assert r.json()["skipped_cohort_ids"] == [str(seeded["c1"].id)]

    assert client.get("/cohort-role-mappings/count", headers=headers).json() == {"count": 1}


def test_sync_applies_and_reports_grants(client, headers, seeded):
    _create(client, headers, seeded, [seeded["c1"]])
    sync_headers = {**headers, "X-Role": "system"}

    r = client.post("/cohort-role-mappings/sync", headers=sync_headers)
    assert r.status_code == 200, r.text
    report = r.json()

    added = {(a["user_id_assigned_to"], a["user_id_assigned_over"]) for a in report["added"]}
    assert added == {
        (str(seeded["u1"]), str(seeded["u2"])),
        (str(seeded["u1"]), str(seeded["u3"])),
    }
    assert all(a["role_id"] == str(seeded["mentor"].id) for a in report["added"])
    assert report["removed"] == []

    r = client.post("/cohort-role-mappings/sync", headers=sync_headers)
    assert r.json() == {"added": [], "removed": []}


def test_sync_after_mapping_delete_revokes_grants(client, headers, seeded):
    created = _create(client, headers, seeded, [seeded["c1"]]).json()["created"]
    client.post("/cohort-role-mappings/sync", headers=headers)

    client.delete(f"/cohort-role-mappings/{created[0]['id']}", headers=headers)
    r = client.post("/cohort-role-mappings/sync", headers=headers)

    assert r.status_code == 200, r.text
    assert len(r.json()["removed"]) == 2
    assert r.json()["added"] == []


def test_health_is_public(client):
    r = client.get("/health", headers={})
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}
