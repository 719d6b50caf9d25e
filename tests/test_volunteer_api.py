import pytest
from httpx import AsyncClient

from models.database import Attendance, VolunteerAssignment
from services.attendance_service import AttendanceService

from conftest import VOLUNTEER_PASSWORD, make_volunteer


# ------------------------- 管理员增删改查 -------------------------
@pytest.mark.asyncio
async def test_create_volunteer_enforces_identity_uniqueness(client: AsyncClient, admin_headers, seed_faculty):
    created = await client.post("/api/volunteers/", json={
        "name": "Asha", "email": "Asha@Example.com", "college_id": "CS001"
    }, headers=admin_headers)
    assert created.status_code == 201, created.text
    data = created.json()["data"]
    assert data["email"] == "asha@example.com"
    assert data["has_password"] is False

    same_email = await client.post("/api/volunteers/", json={"name": "A2", "email": "asha@example.com"},
                                   headers=admin_headers)
    assert same_email.status_code == 409
    faculty_email = await client.post("/api/volunteers/", json={"name": "A3", "email": "rao@example.com"},
                                      headers=admin_headers)
    assert faculty_email.status_code == 409
    same_college = await client.post("/api/volunteers/", json={"name": "A4", "college_id": "CS001"},
                                     headers=admin_headers)
    assert same_college.status_code == 409


@pytest.mark.asyncio
async def test_list_volunteers_with_keyword_and_pagination(client: AsyncClient, admin_headers, db_session):
    for i in range(5):
        make_volunteer(db_session, f"Member {i}", email=f"m{i}@example.com", college_id=f"M{i}")
    make_volunteer(db_session, "Zed", email="zed@example.com")

    resp = await client.get("/api/volunteers/?keyword=member&page=2&page_size=2", headers=admin_headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert [v["name"] for v in data["items"]] == ["Member 2", "Member 3"]
    assert data["pagination"]["total"] == 5
    assert data["pagination"]["total_pages"] == 3
    assert data["pagination"]["has_next"] is True


@pytest.mark.asyncio
async def test_update_volunteer_rechecks_uniqueness_excluding_self(client: AsyncClient, admin_headers, db_session):
    asha = make_volunteer(db_session, "Asha", email="asha@example.com", college_id="CS001")
    make_volunteer(db_session, "Ravi", email="ravi@example.com", college_id="CS002")

    same = await client.put(f"/api/volunteers/{asha.id}", json={"email": "asha@example.com", "dept": "ECE"},
                            headers=admin_headers)
    assert same.status_code == 200
    assert same.json()["data"]["dept"] == "ECE"

    clash = await client.put(f"/api/volunteers/{asha.id}", json={"college_id": "CS002"}, headers=admin_headers)
    assert clash.status_code == 409
    empty = await client.put(f"/api/volunteers/{asha.id}", json={}, headers=admin_headers)
    assert empty.status_code == 400
    missing = await client.put("/api/volunteers/9999", json={"name": "X"}, headers=admin_headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_delete_volunteer_cascades(client: AsyncClient, admin_headers, db_session, seed_assignment):
    await AttendanceService().check_in(db_session, seed_assignment.id)
    volunteer_id = seed_assignment.volunteer_id

    resp = await client.delete(f"/api/volunteers/{volunteer_id}", headers=admin_headers)
    assert resp.status_code == 200
    assert db_session.query(VolunteerAssignment).count() == 0
    assert db_session.query(Attendance).count() == 0


@pytest.mark.asyncio
async def test_volunteer_management_requires_admin(client: AsyncClient, faculty_headers, volunteer_headers):
    assert (await client.get("/api/volunteers/", headers=faculty_headers)).status_code == 403
    assert (await client.get("/api/volunteers/", headers=volunteer_headers)).status_code == 403


@pytest.mark.asyncio
async def test_export_volunteers_csv(client: AsyncClient, admin_headers, seed_volunteer):
    resp = await client.get("/api/volunteers/export_csv", headers=admin_headers)
    assert resp.status_code == 200
    lines = resp.text.strip().splitlines()
    assert lines[0] == "ID,Name,Email,Phone,Department,College ID,Created At"
    assert "asha@example.com" in lines[1]


# ------------------------- 本人自助 -------------------------
@pytest.mark.asyncio
async def test_me_endpoints(client: AsyncClient, volunteer_headers, db_session, seed_assignment):
    me = await client.get("/api/volunteers/me", headers=volunteer_headers)
    assert me.status_code == 200
    assert me.json()["data"]["college_id"] == "CS001"

    before = await client.get("/api/volunteers/me/assignments", headers=volunteer_headers)
    assert before.json()["data"][0]["is_checked_in_today"] is False

    record = await AttendanceService().check_in(db_session, seed_assignment.id)
    after = await client.get("/api/volunteers/me/assignments", headers=volunteer_headers)
    item = after.json()["data"][0]
    assert item["is_checked_in_today"] is True
    assert item["active_attendance_id"] == record.id
    assert item["committee_name"] == "Hospitality"

    committees = await client.get("/api/volunteers/me/committees", headers=volunteer_headers)
    assert [c["name"] for c in committees.json()["data"]] == ["Hospitality"]


@pytest.mark.asyncio
async def test_me_endpoints_are_volunteer_only(client: AsyncClient, admin_headers):
    assert (await client.get("/api/volunteers/me", headers=admin_headers)).status_code == 403


@pytest.mark.asyncio
async def test_set_password_requires_correct_old_password(client: AsyncClient, volunteer_headers):
    missing_old = await client.post("/api/volunteers/me/set-password", json={"new_password": "Brandnew123"},
                                    headers=volunteer_headers)
    assert missing_old.status_code == 400

    wrong_old = await client.post("/api/volunteers/me/set-password", json={
        "old_password": "not-it", "new_password": "Brandnew123"
    }, headers=volunteer_headers)
    assert wrong_old.status_code == 401

    ok = await client.post("/api/volunteers/me/set-password", json={
        "old_password": VOLUNTEER_PASSWORD, "new_password": "Brandnew123"
    }, headers=volunteer_headers)
    assert ok.status_code == 200

    login = await client.post("/api/auth/login", json={"email": "asha@example.com", "password": "Brandnew123"})
    assert login.status_code == 200
