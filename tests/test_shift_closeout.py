import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError

from models.database import Attendance
from services.attendance_service import AttendanceService

from conftest import make_volunteer, make_assignment

attendance_service = AttendanceService()


async def _open_checkins(db_session, event, committee, shifts):
    """为每个班次创建一名志愿者、一条排班和一条在岗记录"""
    records = []
    for i, shift in enumerate(shifts):
        volunteer = make_volunteer(db_session, f"Volunteer {i}", email=f"v{i}@example.com")
        assignment = make_assignment(db_session, event, committee, volunteer, shift=shift)
        records.append(await attendance_service.check_in(db_session, assignment.id))
    return [r.id for r in records]


def _is_open(db_session, attendance_id) -> bool:
    db_session.expire_all()
    return db_session.get(Attendance, attendance_id).check_out_time is None


@pytest.mark.asyncio
async def test_closeout_only_touches_matching_shift(client: AsyncClient, faculty_headers, db_session,
                                                   seed_event, seed_committee):
    morning, evening = await _open_checkins(db_session, seed_event, seed_committee, ["Morning", "Evening"])

    resp = await client.post(
        f"/api/attendance/checkout-shift?event_id={seed_event.id}&committee_id={seed_committee.id}&shift=morning",
        headers=faculty_headers,
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["closed_count"] == 1
    assert not _is_open(db_session, morning)
    assert _is_open(db_session, evening)


@pytest.mark.asyncio
async def test_closeout_skips_failing_row_and_continues(db_session, seed_event, seed_committee, monkeypatch):
    ids = await _open_checkins(db_session, seed_event, seed_committee, ["Morning A", "Morning B", "Morning C"])
    failing_id = ids[1]
    original = AttendanceService._close_one

    def flaky_close(self, db, attendance_id, ts):
        if attendance_id == failing_id:
            raise OperationalError("UPDATE attendance", {}, Exception("lock wait timeout"))
        return original(self, db, attendance_id, ts)

    monkeypatch.setattr(AttendanceService, "_close_one", flaky_close)

    closed = await attendance_service.close_shift(db_session, seed_event.id, seed_committee.id, "morning")
    assert closed == 2
    assert _is_open(db_session, failing_id)
    assert not _is_open(db_session, ids[0])
    assert not _is_open(db_session, ids[2])


@pytest.mark.asyncio
async def test_closeout_with_nothing_open_returns_zero(client: AsyncClient, faculty_headers, seed_event,
                                                      seed_committee):
    resp = await client.post(
        f"/api/attendance/checkout-shift?event_id={seed_event.id}&committee_id={seed_committee.id}&shift=Night",
        headers=faculty_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["closed_count"] == 0


@pytest.mark.asyncio
async def test_closeout_requires_all_parameters(client: AsyncClient, faculty_headers, seed_event):
    resp = await client.post(f"/api/attendance/checkout-shift?event_id={seed_event.id}&shift=Morning",
                             headers=faculty_headers)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_closeout_is_staff_only(client: AsyncClient, volunteer_headers, seed_event, seed_committee):
    resp = await client.post(
        f"/api/attendance/checkout-shift?event_id={seed_event.id}&committee_id={seed_committee.id}&shift=Morning",
        headers=volunteer_headers,
    )
    assert resp.status_code == 403
