from __future__ import annotations

from uuid import uuid4

import pytest

from cohortroles.core.rbac import Forbidden, ensure_allowed


def _hdr(role: str) -> dict[str, str]:
    return {"X-Role": role, "X-Actor-User-Id": str(uuid4())}


def test_ensure_allowed_unknown_permission_is_forbidden():
    with pytest.raises(Forbidden):
        ensure_allowed("cohort_role.nuke", "system")


@pytest.mark.parametrize("role", ["executor", "student", "guest"])
def test_rbac_list_forbidden_for_non_managers(client, role):
    """only system/manager may see mappings -> 403"""
    r = client.get("/cohort-role-mappings", headers=_hdr(role))
    assert r.status_code == 403, r.text


def test_rbac_create_forbidden_makes_no_changes(client, db):
    body = {
        "marker_role_id": str(uuid4()),
        "target_role_id": str(uuid4()),
        "cohort_ids": [str(uuid4())],
    }

    r = client.post("/cohort-role-mappings", json=body, headers=_hdr("student"))
    assert r.status_code == 403, r.text

    r = client.get("/cohort-role-mappings/count", headers=_hdr("manager"))
    assert r.json() == {"count": 0}


def test_rbac_sync_forbidden_for_non_managers(client):
    r = client.post("/cohort-role-mappings/sync", headers=_hdr("executor"))
    assert r.status_code == 403, r.text


def test_missing_x_role_is_401(client):
    r = client.get("/cohort-role-mappings", headers={"X-Actor-User-Id": str(uuid4())})
    assert r.status_code == 401, r.text


def test_missing_actor_user_id_is_401(client):
    r = client.get("/cohort-role-mappings", headers={"X-Role": "manager"})
    assert r.status_code == 401, r.text


def test_invalid_actor_user_id_is_400(client):
    r = client.get("/cohort-role-mappings", headers={"X-Role": "manager", "X-Actor-User-Id": "nope"})
    assert r.status_code == 400, r.text
