from __future__ import annotations

import pytest

from cohortroles.models.cohort_role_mapping import CohortRoleMapping
from cohortroles.services import reconciliation_service


@pytest.fixture()
def pass_in_progress():
    assert reconciliation_service._PASS_LOCK.acquire(blocking=False)
    try:
        yield
    finally:
        reconciliation_service._PASS_LOCK.release()


def test_sync_while_another_pass_runs_is_409(client, headers, pass_in_progress):
    r = client.post("/cohort-role-mappings/sync", headers=headers)
    assert r.status_code == 409, r.text


def test_sync_data_access_failure_is_503(client, headers, engine):
    CohortRoleMapping.__table__.drop(engine)

    r = client.post("/cohort-role-mappings/sync", headers=headers)
    assert r.status_code == 503, r.text
    assert r.json()["detail"] == "Cohort role sync failed, retry later"
