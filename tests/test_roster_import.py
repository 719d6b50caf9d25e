import pytest
from sqlalchemy.exc import OperationalError

from models.database import Volunteer, VolunteerAssignment, Committee
from services.exceptions import ValidationError
from services.roster_import_service import RosterImportService

HEADER = "Name,Email,Phone,Department,College ID,Shift,Role,Status,Notes,Group No,Faculty,start_time_iso\n"


def _roster(rows):
    return (HEADER + "\n".join(rows) + "\n").encode("utf-8")


def _twelve_rows():
    rows = []
    for i in range(1, 13):
        name = "" if i in (4, 9) else f"Volunteer {i}"
        rows.append(f"{name},v{i}@example.com,90000000{i:02d},CSE,R{i:03d},Morning,,,,,,2024-02-01T09:00:00")
    return rows


@pytest.mark.asyncio
async def test_import_reports_row_errors_with_line_numbers(db_session, seed_event, seed_committee):
    service = RosterImportService()
    summary = await service.import_roster(db_session, seed_event.id, seed_committee.id, _roster(_twelve_rows()))

    assert summary.created_volunteers == 10
    assert summary.created_assignments == 10
    assert summary.updated_assignments == 0
    # 表头为第1行，第4、9条数据在第5、10行
    assert [(e.line, e.error) for e in summary.errors] == [(5, "missing name"), (10, "missing name")]
    assert db_session.query(Volunteer).count() == 10
    assert db_session.query(VolunteerAssignment).count() == 10


@pytest.mark.asyncio
async def test_reimport_is_idempotent(db_session, seed_event, seed_committee):
    service = RosterImportService()
    content = _roster(_twelve_rows())
    await service.import_roster(db_session, seed_event.id, seed_committee.id, content)

    summary = await service.import_roster(db_session, seed_event.id, seed_committee.id, content)
    assert summary.created_volunteers == 0
    assert summary.created_assignments == 0
    assert summary.updated_assignments == 10
    assert len(summary.errors) == 2
    assert db_session.query(Volunteer).count() == 10
    assert db_session.query(VolunteerAssignment).count() == 10


@pytest.mark.asyncio
async def test_reimport_overwrites_assignment_fields(db_session, seed_event, seed_committee):
    service = RosterImportService()
    await service.import_roster(db_session, seed_event.id, seed_committee.id, _roster([
        "Asha,asha@example.com,,,CS001,Morning,lead,,,,,2024-02-01T09:00:00",
    ]))
    summary = await service.import_roster(db_session, seed_event.id, seed_committee.id, _roster([
        "Asha,ASHA@example.com,,,,Evening,,standby,,,,2024-02-01T17:00:00",
    ]))

    assert summary.updated_assignments == 1
    assignment = db_session.query(VolunteerAssignment).one()
    db_session.refresh(assignment)
    assert assignment.shift == "Evening"
    assert assignment.role == "volunteer"
    assert assignment.status == "standby"
    assert assignment.start_time.hour == 17


@pytest.mark.asyncio
async def test_bad_timestamp_and_unknown_role_are_row_errors(db_session, seed_event, seed_committee):
    service = RosterImportService()
    summary = await service.import_roster(db_session, seed_event.id, seed_committee.id, _roster([
        "Asha,asha@example.com,,,,Morning,,,,,,tomorrow morning",
        "Ravi,ravi@example.com,,,,Morning,captain,,,,,",
        "Nina,nina@example.com,,,,Morning,,,,,,2024-02-01T09:00:00Z",
    ]))

    assert summary.created_volunteers == 1
    assert summary.errors[0].line == 2
    assert summary.errors[0].error == "bad start_time_iso (ISO-8601): tomorrow morning"
    assert summary.errors[1].line == 3
    assert "invalid role" in summary.errors[1].error
    nina = db_session.query(Volunteer).filter(Volunteer.email == "nina@example.com").one()
    assignment = db_session.query(VolunteerAssignment).filter(VolunteerAssignment.volunteer_id == nina.id).one()
    # UTC 09:00 → Asia/Kolkata 14:30
    assert (assignment.start_time.hour, assignment.start_time.minute) == (14, 30)


@pytest.mark.asyncio
async def test_overlong_cells_are_row_errors(db_session, seed_event, seed_committee):
    service = RosterImportService()
    summary = await service.import_roster(db_session, seed_event.id, seed_committee.id, _roster([
        "Asha,asha@example.com,+91 98765 43210 / 98765 43211,,,Morning,,,,,,",
        "Ravi,ravi@example.com,,,,{},,,,,,".format("Morning-" * 20),
        "Nina,nina@example.com,9876543210,CSE,R001,Morning,,,,,,",
    ]))

    assert [(e.line, e.error) for e in summary.errors] == [
        (2, "phone too long (29 > 20 characters)"),
        (3, "shift too long (160 > 100 characters)"),
    ]
    assert summary.created_volunteers == 1
    assert summary.created_assignments == 1
    assert [v.email for v in db_session.query(Volunteer).all()] == ["nina@example.com"]


@pytest.mark.asyncio
async def test_group_and_faculty_columns_fold_into_notes(db_session, seed_event, seed_committee):
    service = RosterImportService()
    await service.import_roster(db_session, seed_event.id, seed_committee.id, _roster([
        "Asha,asha@example.com,,,,Morning,,,Bring ID,G7,Dr. Rao,",
        "Ravi,ravi@example.com,,,,Morning,,,,G8,,",
    ]))

    notes = {
        a.volunteer.name: a.notes
        for a in db_session.query(VolunteerAssignment).all()
    }
    assert notes["Asha"] == "Bring ID; Group No: G7, Faculty: Dr. Rao"
    assert notes["Ravi"] == "Group No: G8"


@pytest.mark.asyncio
async def test_bom_header_and_alias_columns(db_session, seed_event, seed_committee):
    service = RosterImportService()
    content = "\ufeffname, roll no ,dept\nAsha,CS001,CSE\n\n".encode("utf-8")
    summary = await service.import_roster(db_session, seed_event.id, seed_committee.id, content)

    assert summary.created_volunteers == 1
    volunteer = db_session.query(Volunteer).one()
    assert volunteer.college_id == "CS001"
    assert volunteer.dept == "CSE"
    assert volunteer.email is None


@pytest.mark.asyncio
async def test_faculty_email_row_is_rejected_without_aborting_batch(db_session, seed_event, seed_committee,
                                                                    seed_faculty):
    service = RosterImportService()
    summary = await service.import_roster(db_session, seed_event.id, seed_committee.id, _roster([
        "Dr. Rao,rao@example.com,,,,Morning,,,,,,",
        "Asha,asha@example.com,,,,Morning,,,,,,",
    ]))

    assert summary.created_volunteers == 1
    assert summary.created_assignments == 1
    assert [e.line for e in summary.errors] == [2]


@pytest.mark.asyncio
async def test_rows_without_email_or_college_id_always_create(db_session, seed_event, seed_committee):
    service = RosterImportService()
    content = _roster(["Asha,,,,,Morning,,,,,,"])
    await service.import_roster(db_session, seed_event.id, seed_committee.id, content)
    summary = await service.import_roster(db_session, seed_event.id, seed_committee.id, content)

    assert summary.created_volunteers == 1
    assert db_session.query(Volunteer).count() == 2


@pytest.mark.asyncio
async def test_committee_must_belong_to_event(db_session, seed_event, seed_committee):
    from models.database import Event
    other = Event(name="Other Fest")
    db_session.add(other)
    db_session.commit()

    service = RosterImportService()
    with pytest.raises(ValidationError):
        await service.import_roster(db_session, other.id, seed_committee.id, _roster(["Asha,,,,,,,,,,,"]))
    with pytest.raises(ValidationError):
        await service.import_roster(db_session, seed_event.id, 9999, _roster(["Asha,,,,,,,,,,,"]))


@pytest.mark.asyncio
async def test_missing_name_column_rejects_file(db_session, seed_event, seed_committee):
    service = RosterImportService()
    with pytest.raises(ValidationError):
        await service.import_roster(db_session, seed_event.id, seed_committee.id, b"email,phone\na@b.com,1\n")
    with pytest.raises(ValidationError):
        await service.import_roster(db_session, seed_event.id, seed_committee.id, b"")


@pytest.mark.asyncio
async def test_storage_failure_rolls_back_whole_batch(db_session, seed_event, seed_committee, monkeypatch):
    service = RosterImportService()
    original = service.assignment_service.upsert_assignment
    calls = {"n": 0}

    async def flaky_upsert(*args, **kwargs):
        calls["n"] += 1
        if calls["n"] == 3:
            raise OperationalError("INSERT INTO volunteer_assignments", {}, Exception("disk I/O error"))
        return await original(*args, **kwargs)

    monkeypatch.setattr(service.assignment_service, "upsert_assignment", flaky_upsert)

    with pytest.raises(OperationalError):
        await service.import_roster(db_session, seed_event.id, seed_committee.id, _roster(_twelve_rows()))

    assert db_session.query(Volunteer).count() == 0
    assert db_session.query(VolunteerAssignment).count() == 0
    assert db_session.query(Committee).count() == 1


@pytest.mark.asyncio
async def test_bulk_endpoint_returns_summary(client, admin_headers, seed_event, seed_committee):
    files = {"file": ("roster.csv", _roster(_twelve_rows()), "text/csv")}
    resp = await client.post(
        f"/api/volunteers/bulk?event_id={seed_event.id}&committee_id={seed_committee.id}",
        files=files,
        headers=admin_headers,
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["created_volunteers"] == 10
    assert body["errors"] == [{"line": 5, "error": "missing name"}, {"line": 10, "error": "missing name"}]


@pytest.mark.asyncio
async def test_bulk_endpoint_rejects_mismatched_committee(client, admin_headers, seed_committee):
    files = {"file": ("roster.csv", _roster(["Asha,,,,,,,,,,,"]), "text/csv")}
    resp = await client.post(
        f"/api/volunteers/bulk?event_id=9999&committee_id={seed_committee.id}",
        files=files,
        headers=admin_headers,
    )
    assert resp.status_code == 400
