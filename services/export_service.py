# 标准库
import csv
import io
from typing import Any, Callable, Dict, Iterable, List, Sequence, Tuple

# 自定义模块
from models.database import Volunteer, VolunteerAssignment
from utils.time_utils import isoformat_or_empty

Column = Tuple[str, Callable[[Any], Any]]


def _text(value) -> str:
    if value is None:
        return ""
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def _key(name: str) -> Callable[[Dict[str, Any]], Any]:
    return lambda row: row.get(name)


ATTENDANCE_COLUMNS: List[Column] = [
    ("Attendance ID", _key("attendance_id")),
    ("Assignment ID", _key("assignment_id")),
    ("Event ID", _key("event_id")),
    ("Event Name", _key("event_name")),
    ("Committee ID", _key("committee_id")),
    ("Committee Name", _key("committee_name")),
    ("Volunteer ID", _key("volunteer_id")),
    ("Volunteer Name", _key("volunteer_name")),
    ("Volunteer College ID", _key("volunteer_college_id")),
    ("Shift", _key("shift")),
    ("Check-in Time (ISO)", _key("check_in_time")),
    ("Check-out Time (ISO)", _key("check_out_time")),
    ("Latitude", _key("latitude")),
    ("Longitude", _key("longitude")),
]

ACTIVE_CHECKIN_COLUMNS: List[Column] = [
    ("Attendance ID", _key("attendance_id")),
    ("Assignment ID", _key("assignment_id")),
    ("Event ID", _key("event_id")),
    ("Event Name", _key("event_name")),
    ("Committee ID", _key("committee_id")),
    ("Committee Name", _key("committee_name")),
    ("Volunteer ID", _key("volunteer_id")),
    ("Volunteer Name", _key("volunteer_name")),
    ("Volunteer College ID", _key("volunteer_college_id")),
    ("Shift", _key("shift")),
    ("Check-in Time (ISO)", _key("check_in_time")),
    ("Latitude", _key("latitude")),
    ("Longitude", _key("longitude")),
]

PENDING_SHIFT_COLUMNS: List[Column] = [
    ("Assignment ID", _key("assignment_id")),
    ("Event ID", _key("event_id")),
    ("Event Name", _key("event_name")),
    ("Committee ID", _key("committee_id")),
    ("Committee Name", _key("committee_name")),
    ("Volunteer ID", _key("volunteer_id")),
    ("Volunteer Name", _key("volunteer_name")),
    ("Volunteer Department", _key("volunteer_dept")),
    ("Volunteer College ID", _key("volunteer_college_id")),
    ("Role", _key("assignment_role")),
    ("Status", _key("assignment_status")),
    ("Reporting Time (ISO)", _key("reporting_time")),
    ("Start Time (ISO)", _key("start_time")),
    ("End Time (ISO)", _key("end_time")),
    ("Shift", _key("shift")),
    ("Notes", _key("notes")),
]

ASSIGNMENT_STATUS_COLUMNS: List[Column] = PENDING_SHIFT_COLUMNS[:7] + [
    ("Volunteer Email", _key("volunteer_email")),
    ("Volunteer College ID", _key("volunteer_college_id")),
    ("Role", _key("assignment_role")),
    ("Status", _key("assignment_status")),
    ("Shift", _key("shift")),
    ("Start Time (ISO)", _key("start_time")),
    ("End Time (ISO)", _key("end_time")),
    ("Is Checked In", lambda row: "true" if row.get("is_checked_in") else "false"),
    ("Active Attendance ID", _key("active_attendance_id")),
]

VOLUNTEER_COLUMNS: List[Column] = [
    ("ID", lambda v: v.id),
    ("Name", lambda v: v.name),
    ("Email", lambda v: v.email),
    ("Phone", lambda v: v.phone),
    ("Department", lambda v: v.dept),
    ("College ID", lambda v: v.college_id),
    ("Created At", lambda v: isoformat_or_empty(v.created_at)),
]

ASSIGNMENT_COLUMNS: List[Column] = [
    ("Assignment ID", lambda a: a.id),
    ("Event ID", lambda a: a.event_id),
    ("Event Name", lambda a: a.event.name),
    ("Committee ID", lambda a: a.committee_id),
    ("Committee Name", lambda a: a.committee.name),
    ("Volunteer ID", lambda a: a.volunteer_id),
    ("Volunteer Name", lambda a: a.volunteer.name),
    ("Volunteer Email", lambda a: a.volunteer.email),
    ("Volunteer College ID", lambda a: a.volunteer.college_id),
    ("Role", lambda a: a.role),
    ("Status", lambda a: a.status),
    ("Reporting Time (ISO)", lambda a: a.reporting_time),
    ("Shift", lambda a: a.shift),
    ("Start Time (ISO)", lambda a: a.start_time),
    ("End Time (ISO)", lambda a: a.end_time),
    ("Notes", lambda a: a.notes),
    ("Created At (ISO)", lambda a: a.created_at),
]


def render_csv(columns: Sequence[Column], items: Iterable[Any]) -> str:
    """按列定义渲染 CSV 文本（含表头）"""
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow([title for title, _ in columns])
    for item in items:
        writer.writerow([_text(getter(item)) for _, getter in columns])
    return buffer.getvalue()


def volunteers_csv(volunteers: Iterable[Volunteer]) -> str:
    return render_csv(VOLUNTEER_COLUMNS, volunteers)


def assignments_csv(assignments: Iterable[VolunteerAssignment]) -> str:
    return render_csv(ASSIGNMENT_COLUMNS, assignments)
