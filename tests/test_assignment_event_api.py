import pytest
from httpx import AsyncClient

from models.database import Attendance, VolunteerAssignment, Committee
from services.attendance_service import AttendanceService


# ------------------------- 活动与委员会 -------------------------
@pytest.mark.asyncio
async def test_event_and_committee_crud(client: AsyncClient, admin_headers, faculty_headers):
    event = await client.post("/api/events/", json={"name": "Annual Fest", "venue": "Ground"},
                              headers=admin_headers)
    assert event.status_code == 201
    event_id = event.json()["data"]["id"]
    assert event.json()["data"]["tz"] == "Asia/Kolkata"

    committee = await client.post("/api/committees/", json={"event_id": event_id, "name": "Stage"},
                                  headers=admin_headers)
    assert committee.status_code == 201
    committee_id = committee.json()["data"]["id"]

    duplicate = await client.post("/api/committees/", json={"event_id": event_id, "name": "Stage"},
                                  headers=admin_headers)
    assert duplicate.status_code == 409
    no_event = await client.post("/api/committees/", json={"event_id": 9999, "name": "Stage"},
                                 headers=admin_headers)
    assert no_event.status_code == 400

    listing = await client.get(f"/api/committees/?event_id={event_id}", headers=faculty_headers)
    assert [c["event_name"] for c in listing.json()["data"]] == ["Annual Fest"]

    renamed = await client.put(f"/api/committees/{committee_id}", json={"description": "Main stage crew"},
                               headers=admin_headers)
    assert renamed.json()["data"]["description"] == "Main stage crew"

    forbidden = await client.post("/api/events/", json={"name": "X"}, headers=faculty_headers)
    assert forbidden.status_code == 403

    deleted = await client.delete(f"/api/events/{event_id}", headers=admin_headers)
    assert deleted.status_code == 200
    assert (await client.get(f"/api/committees/{committee_id}", headers=faculty_headers)).status_code == 404


# ------------------------- 排班 -------------------------
@pytest.mark.asyncio
async def test_create_assignment_upserts_on_triple(client: AsyncClient, admin_headers, db_session,
                                                  seed_event, seed_committee, seed_volunteer):
    payload = {
        "event_id": seed_event.id,
        "committee_id": seed_committee.id,
        "volunteer_id": seed_volunteer.id,
        "role": "lead",
        "shift": "Morning",
        "start_time": "2024-02-01T09:00:00",
    }
    first = await client.post("/api/assignments/", json=payload, headers=admin_headers)
    assert first.status_code == 201, first.text
    assert first.json()["data"]["volunteer_name"] == "Asha"

    second = await client.post("/api/assignments/", json={**payload, "role": None, "shift": "Evening"},
                               headers=admin_headers)
    assert second.status_code == 201
    data = second.json()["data"]
    assert data["id"] == first.json()["data"]["id"]
    assert data["role"] == "volunteer"
    assert data["shift"] == "Evening"
    assert db_session.query(VolunteerAssignment).count() == 1


@pytest.mark.asyncio
async def test_create_assignment_validates_references_and_role(client: AsyncClient, admin_headers,
                                                               seed_event, seed_committee, seed_volunteer):
    base = {"event_id": seed_event.id, "committee_id": seed_committee.id, "volunteer_id": seed_volunteer.id}
    assert (await client.post("/api/assignments/", json={**base, "volunteer_id": 9999},
                              headers=admin_headers)).status_code == 400
    assert (await client.post("/api/assignments/", json={**base, "committee_id": 9999},
                              headers=admin_headers)).status_code == 400
    assert (await client.post("/api/assignments/", json={**base, "role": "captain"},
                              headers=admin_headers)).status_code == 400


@pytest.mark.asyncio
async def test_list_update_delete_assignment(client: AsyncClient, admin_headers, db_session, seed_assignment):
    listing = await client.get(f"/api/assignments/?volunteer_id={seed_assignment.volunteer_id}&shift=morn",
                               headers=admin_headers)
    assert [a["id"] for a in listing.json()["data"]] == [seed_assignment.id]

    bad_date = await client.get("/api/assignments/?start_date=tomorrow", headers=admin_headers)
    assert bad_date.status_code == 400

    empty = await client.put(f"/api/assignments/{seed_assignment.id}", json={}, headers=admin_headers)
    assert empty.status_code == 400
    updated = await client.put(f"/api/assignments/{seed_assignment.id}", json={"status": "standby"},
                               headers=admin_headers)
    assert updated.json()["data"]["status"] == "standby"

    await AttendanceService().check_in(db_session, seed_assignment.id)
    deleted = await client.delete(f"/api/assignments/{seed_assignment.id}", headers=admin_headers)
    assert deleted.status_code == 200
    assert db_session.query(Attendance).count() == 0
    assert db_session.query(Committee).count() == 1
    assert (await client.get(f"/api/assignments/{seed_assignment.id}", headers=admin_headers)).status_code == 404


@pytest.mark.asyncio
async def test_export_assignments_csv(client: AsyncClient, admin_headers, seed_assignment):
    resp = await client.get("/api/assignments/export_csv", headers=admin_headers)
    assert resp.status_code == 200
    lines = resp.text.strip().splitlines()
    assert lines[0].startswith("Assignment ID,Event ID,Event Name,Committee ID,Committee Name")
    assert "Hospitality" in lines[1]


# ------------------------- 健康检查 -------------------------
@pytest.mark.asyncio
async def test_health_endpoints(client: AsyncClient):
    health = await client.get("/api/v1/health/")
    assert health.status_code == 200
    assert health.json()["status"] == "healthy"
    ping = await client.get("/api/v1/health/ping")
    assert ping.json()["status"] == "ok"
