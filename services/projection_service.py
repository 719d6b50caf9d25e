# 标准库
from datetime import date
from typing import Optional, List, Dict, Any

# 第三方库
from sqlalchemy import select, exists
from sqlalchemy.orm import Session
from loguru import logger

# 自定义模块
from models.database import Attendance, Committee, Event, Volunteer, VolunteerAssignment
from .exceptions import ValidationError
from .query_filters import ShiftScope, ASSIGNMENT_ORDERING, on_day, date_range


def _assignment_columns():
    """排班视图公共列"""
    return [
        VolunteerAssignment.id.label("assignment_id"),
        Event.id.label("event_id"),
        Event.name.label("event_name"),
        Committee.id.label("committee_id"),
        Committee.name.label("committee_name"),
        Volunteer.id.label("volunteer_id"),
        Volunteer.name.label("volunteer_name"),
        VolunteerAssignment.role.label("assignment_role"),
        VolunteerAssignment.status.label("assignment_status"),
        VolunteerAssignment.reporting_time,
        VolunteerAssignment.start_time,
        VolunteerAssignment.end_time,
        VolunteerAssignment.shift,
        VolunteerAssignment.notes,
    ]


def _join_assignment_context(stmt):
    """关联志愿者、委员会、活动"""
    return (
        stmt.join(Volunteer, Volunteer.id == VolunteerAssignment.volunteer_id)
        .join(Committee, Committee.id == VolunteerAssignment.committee_id)
        .join(Event, Event.id == VolunteerAssignment.event_id)
    )


class ShiftProjectionService(object):
    """排班/出勤只读视图

    三个视图共用 ShiftScope 的过滤与分页，以及统一排序
    （活动 → 委员会 → 开始时间 → 志愿者姓名）。
    """

    async def shifts_without_checkin(self, db: Session, scope: ShiftScope, target_date: date) -> List[Dict[str, Any]]:
        """开始日期为 target_date 且当天没有任何签到记录（无论是否签退）的排班"""
        has_checkin = exists().where(
            Attendance.assignment_id == VolunteerAssignment.id,
            Attendance.check_in_date == target_date,
        )
        stmt = _join_assignment_context(
            select(*_assignment_columns(), Volunteer.dept.label("volunteer_dept"),
                   Volunteer.college_id.label("volunteer_college_id"))
            .select_from(VolunteerAssignment)
        ).where(on_day(VolunteerAssignment.start_time, target_date), ~has_checkin)
        stmt = scope.page(scope.apply(stmt).order_by(*ASSIGNMENT_ORDERING))
        rows = [dict(row) for row in db.execute(stmt).mappings()]
        logger.info(f"未签到排班查询: date={target_date.isoformat()} count={len(rows)}")
        return rows

    async def active_checkins(self,
                              db: Session,
                              scope: ShiftScope,
                              on_date: Optional[date] = None) -> List[Dict[str, Any]]:
        """当前未签退的出勤记录；on_date 给定时只看该日签到的记录"""
        stmt = _join_assignment_context(
            select(
                Attendance.id.label("attendance_id"),
                Attendance.assignment_id,
                Attendance.check_in_time,
                Attendance.latitude,
                Attendance.longitude,
                VolunteerAssignment.shift,
                VolunteerAssignment.start_time,
                Volunteer.id.label("volunteer_id"),
                Volunteer.name.label("volunteer_name"),
                Volunteer.college_id.label("volunteer_college_id"),
                Committee.id.label("committee_id"),
                Committee.name.label("committee_name"),
                Event.id.label("event_id"),
                Event.name.label("event_name"),
            )
            .select_from(Attendance)
            .join(VolunteerAssignment, VolunteerAssignment.id == Attendance.assignment_id)
        ).where(Attendance.check_out_time.is_(None))
        if on_date is not None:
            stmt = stmt.where(Attendance.check_in_date == on_date)
        stmt = scope.page(scope.apply(stmt).order_by(*ASSIGNMENT_ORDERING, Attendance.id))
        return [dict(row) for row in db.execute(stmt).mappings()]

    async def active_in_committee(self, db: Session, scope: ShiftScope) -> List[Dict[str, Any]]:
        """某委员会内全部在岗记录，committee_id 必填"""
        if scope.committee_id is None:
            raise ValidationError("committee_id 为必填参数")
        return await self.active_checkins(db, scope)

    async def assignment_status(self,
                                db: Session,
                                scope: ShiftScope,
                                reference_date: date,
                                start_date: Optional[date] = None,
                                end_date: Optional[date] = None) -> List[Dict[str, Any]]:
        """范围内每个排班在 reference_date 是否有在岗记录

        start_date/end_date 按排班开始日期过滤。
        """
        active_attendance_id = (
            select(Attendance.id)
            .where(
                Attendance.assignment_id == VolunteerAssignment.id,
                Attendance.check_in_date == reference_date,
                Attendance.check_out_time.is_(None),
            )
            .order_by(Attendance.id)
            .limit(1)
            .correlate(VolunteerAssignment)
            .scalar_subquery()
        )
        stmt = _join_assignment_context(
            select(*_assignment_columns(),
                   Volunteer.email.label("volunteer_email"),
                   Volunteer.college_id.label("volunteer_college_id"),
                   active_attendance_id.label("active_attendance_id"))
            .select_from(VolunteerAssignment)
        )
        conditions = date_range(VolunteerAssignment.start_time, start_date, end_date)
        if conditions:
            stmt = stmt.where(*conditions)
        stmt = scope.page(scope.apply(stmt).order_by(*ASSIGNMENT_ORDERING))
        rows = []
        for row in db.execute(stmt).mappings():
            item = dict(row)
            item["is_checked_in"] = item["active_attendance_id"] is not None
            rows.append(item)
        return rows

    async def list_attendance(self,
                              db: Session,
                              scope: ShiftScope,
                              start_date: Optional[date] = None,
                              end_date: Optional[date] = None) -> List[Dict[str, Any]]:
        """全部出勤记录（含已签退），按签到时间倒序；日期范围作用于签到日期"""
        stmt = _join_assignment_context(
            select(
                Attendance.id.label("attendance_id"),
                Attendance.assignment_id,
                Event.id.label("event_id"),
                Event.name.label("event_name"),
                Committee.id.label("committee_id"),
                Committee.name.label("committee_name"),
                Volunteer.id.label("volunteer_id"),
                Volunteer.name.label("volunteer_name"),
                Volunteer.college_id.label("volunteer_college_id"),
                VolunteerAssignment.shift,
                Attendance.check_in_time,
                Attendance.check_out_time,
                Attendance.latitude,
                Attendance.longitude,
            )
            .select_from(Attendance)
            .join(VolunteerAssignment, VolunteerAssignment.id == Attendance.assignment_id)
        )
        if start_date:
            stmt = stmt.where(Attendance.check_in_date >= start_date)
        if end_date:
            stmt = stmt.where(Attendance.check_in_date <= end_date)
        stmt = scope.page(scope.apply(stmt).order_by(Attendance.check_in_time.desc(), Attendance.id.desc()))
        return [dict(row) for row in db.execute(stmt).mappings()]
