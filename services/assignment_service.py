# 标准库
from datetime import date, datetime
from typing import Optional, List, Tuple, Dict, Any

# 第三方库
from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload
from loguru import logger

# 自定义模块
from models.database import (
    Attendance, Committee, Event, Volunteer, VolunteerAssignment, AssignmentRole, AssignmentStatus
)
from schemas import AssignmentUpsert, AssignmentUpdate
from utils.time_utils import to_local_naive, local_today
from .exceptions import ServiceError, ValidationError, NotFoundError
from .identity_service import normalize_text
from .query_filters import ShiftScope, date_range

_ROLE_VALUES = [r.value for r in AssignmentRole]
_STATUS_VALUES = [s.value for s in AssignmentStatus]


def normalize_assignment_role(value: Optional[str]) -> str:
    """空值默认 volunteer，未知值抛出 ValidationError"""
    value = (value or "").strip().lower()
    if not value:
        return AssignmentRole.VOLUNTEER.value
    if value not in _ROLE_VALUES:
        raise ValidationError(f"invalid role '{value}'，可选值：{', '.join(_ROLE_VALUES)}")
    return value


def normalize_assignment_status(value: Optional[str]) -> str:
    """空值默认 assigned，未知值抛出 ValidationError"""
    value = (value or "").strip().lower()
    if not value:
        return AssignmentStatus.ASSIGNED.value
    if value not in _STATUS_VALUES:
        raise ValidationError(f"invalid status '{value}'，可选值：{', '.join(_STATUS_VALUES)}")
    return value


def assignment_to_dict(assignment: VolunteerAssignment) -> Dict[str, Any]:
    """排班转为带关联名称的字典"""
    volunteer = assignment.volunteer
    return {
        "id": assignment.id,
        "event_id": assignment.event_id,
        "committee_id": assignment.committee_id,
        "volunteer_id": assignment.volunteer_id,
        "role": assignment.role,
        "status": assignment.status,
        "reporting_time": assignment.reporting_time,
        "shift": assignment.shift,
        "start_time": assignment.start_time,
        "end_time": assignment.end_time,
        "notes": assignment.notes,
        "created_at": assignment.created_at,
        "volunteer_name": volunteer.name if volunteer else None,
        "volunteer_email": volunteer.email if volunteer else None,
        "volunteer_college_id": volunteer.college_id if volunteer else None,
        "committee_name": assignment.committee.name if assignment.committee else None,
        "event_name": assignment.event.name if assignment.event else None,
    }


class AssignmentService(object):
    """排班业务逻辑层

    upsert_assignment 是唯一的排班写入策略：按 (活动, 委员会, 志愿者) 查找，
    不存在则插入，存在则覆盖角色、状态、班次、时间与备注（后写覆盖先写），
    不区分排班角色。名册导入与管理员创建共用该方法。
    """

    async def ensure_event_committee(self, db: Session, event_id: int, committee_id: int) -> Committee:
        """校验活动与委员会存在且委员会隶属该活动"""
        if not event_id or event_id <= 0 or not committee_id or committee_id <= 0:
            raise ValidationError("event_id 与 committee_id 为必填的正整数")
        if db.get(Event, event_id) is None:
            raise ValidationError(f"活动 {event_id} 不存在")
        committee = db.get(Committee, committee_id)
        if committee is None:
            raise ValidationError(f"委员会 {committee_id} 不存在")
        if committee.event_id != event_id:
            raise ValidationError(f"委员会 {committee_id} 不属于活动 {event_id}")
        return committee

    async def upsert_assignment(self,
                                db: Session,
                                event_id: int,
                                committee_id: int,
                                volunteer_id: int,
                                role: str,
                                status: str,
                                reporting_time: Optional[datetime] = None,
                                shift: Optional[str] = None,
                                start_time: Optional[datetime] = None,
                                end_time: Optional[datetime] = None,
                                notes: Optional[str] = None) -> Tuple[VolunteerAssignment, bool]:
        """插入或覆盖排班（flush，不提交）

        Returns:
            (排班, 是否新建)
        """
        assignment = db.query(VolunteerAssignment).filter(
            VolunteerAssignment.event_id == event_id,
            VolunteerAssignment.committee_id == committee_id,
            VolunteerAssignment.volunteer_id == volunteer_id,
        ).first()
        created = assignment is None
        if created:
            assignment = VolunteerAssignment(
                event_id=event_id, committee_id=committee_id, volunteer_id=volunteer_id
            )
            db.add(assignment)

        assignment.role = role
        assignment.status = status
        assignment.reporting_time = reporting_time
        assignment.shift = normalize_text(shift)
        assignment.start_time = start_time
        assignment.end_time = end_time
        assignment.notes = normalize_text(notes)
        db.flush()
        return assignment, created

    async def create_assignment(self, db: Session, payload: AssignmentUpsert) -> Tuple[VolunteerAssignment, bool]:
        """管理员创建排班（已存在则覆盖）"""
        try:
            await self.ensure_event_committee(db, payload.event_id, payload.committee_id)
            if db.get(Volunteer, payload.volunteer_id) is None:
                raise ValidationError(f"志愿者 {payload.volunteer_id} 不存在")
            assignment, created = await self.upsert_assignment(
                db,
                event_id=payload.event_id,
                committee_id=payload.committee_id,
                volunteer_id=payload.volunteer_id,
                role=normalize_assignment_role(payload.role),
                status=normalize_assignment_status(payload.status),
                reporting_time=to_local_naive(payload.reporting_time),
                shift=payload.shift,
                start_time=to_local_naive(payload.start_time),
                end_time=to_local_naive(payload.end_time),
                notes=payload.notes,
            )
            db.commit()
            db.refresh(assignment)
            logger.info(f"排班{'创建' if created else '覆盖'}成功: assignment_id={assignment.id}")
            return assignment, created
        except ServiceError as se:
            logger.warning(f"创建排班参数错误: {se.message}")
            db.rollback()
            raise
        except Exception as e:
            logger.error(f"创建排班失败: {e}")
            db.rollback()
            raise

    async def get_assignment(self, db: Session, assignment_id: int) -> VolunteerAssignment:
        assignment = db.get(VolunteerAssignment, assignment_id)
        if assignment is None:
            raise NotFoundError(f"排班 {assignment_id} 不存在")
        return assignment

    async def list_assignments(self,
                               db: Session,
                               scope: ShiftScope,
                               start_date: Optional[date] = None,
                               end_date: Optional[date] = None) -> List[VolunteerAssignment]:
        """排班列表，按开始时间倒序"""
        stmt = select(VolunteerAssignment).options(
            joinedload(VolunteerAssignment.volunteer),
            joinedload(VolunteerAssignment.committee),
            joinedload(VolunteerAssignment.event),
        )
        stmt = scope.apply(stmt)
        conditions = date_range(VolunteerAssignment.start_time, start_date, end_date)
        if conditions:
            stmt = stmt.where(*conditions)
        stmt = stmt.order_by(VolunteerAssignment.start_time.desc(), VolunteerAssignment.id.desc())
        return list(db.execute(scope.page(stmt)).scalars().all())

    async def update_assignment(self, db: Session, assignment_id: int, payload: AssignmentUpdate) -> VolunteerAssignment:
        """部分更新排班，只修改请求中显式提供的字段"""
        try:
            assignment = await self.get_assignment(db, assignment_id)
            changes = payload.model_dump(exclude_unset=True)
            if not changes:
                raise ValidationError("没有需要更新的字段")
            if "role" in changes:
                assignment.role = normalize_assignment_role(changes["role"])
            if "status" in changes:
                assignment.status = normalize_assignment_status(changes["status"])
            for field in ("reporting_time", "start_time", "end_time"):
                if field in changes:
                    setattr(assignment, field, to_local_naive(changes[field]))
            for field in ("shift", "notes"):
                if field in changes:
                    setattr(assignment, field, normalize_text(changes[field]))
            db.commit()
            db.refresh(assignment)
            logger.info(f"排班更新成功: assignment_id={assignment_id} fields={list(changes)}")
            return assignment
        except ServiceError as se:
            logger.warning(f"更新排班失败: {se.message}")
            db.rollback()
            raise
        except Exception as e:
            logger.error(f"更新排班异常: {e}")
            db.rollback()
            raise

    async def delete_assignment(self, db: Session, assignment_id: int) -> None:
        """删除排班，级联删除其出勤记录"""
        try:
            assignment = await self.get_assignment(db, assignment_id)
            db.delete(assignment)
            db.commit()
            logger.info(f"排班已删除: assignment_id={assignment_id}")
        except ServiceError:
            db.rollback()
            raise
        except Exception as e:
            logger.error(f"删除排班异常: {e}")
            db.rollback()
            raise

    async def get_volunteer_assignments(self,
                                        db: Session,
                                        volunteer_id: int,
                                        limit: int = 100,
                                        offset: int = 0) -> List[Dict[str, Any]]:
        """志愿者本人的排班，附带今天是否在岗"""
        scope = ShiftScope(volunteer_id=volunteer_id, limit=limit, offset=offset)
        today = local_today()
        active_attendance_id = (
            select(Attendance.id)
            .where(
                Attendance.assignment_id == VolunteerAssignment.id,
                Attendance.check_in_date == today,
                Attendance.check_out_time.is_(None),
            )
            .limit(1)
            .correlate(VolunteerAssignment)
            .scalar_subquery()
        )
        stmt = select(VolunteerAssignment, active_attendance_id.label("active_attendance_id")).options(
            joinedload(VolunteerAssignment.volunteer),
            joinedload(VolunteerAssignment.committee),
            joinedload(VolunteerAssignment.event),
        )
        stmt = scope.page(scope.apply(stmt).order_by(
            VolunteerAssignment.created_at.desc(), VolunteerAssignment.id.desc()
        ))
        items = []
        for assignment, attendance_id in db.execute(stmt).all():
            item = assignment_to_dict(assignment)
            item["active_attendance_id"] = attendance_id
            item["is_checked_in_today"] = attendance_id is not None
            items.append(item)
        return items

    async def get_volunteer_committees(self, db: Session, volunteer_id: int) -> List[Committee]:
        """志愿者参与的委员会（去重，按名称排序）"""
        stmt = (
            select(Committee)
            .join(VolunteerAssignment, VolunteerAssignment.committee_id == Committee.id)
            .where(VolunteerAssignment.volunteer_id == volunteer_id)
            .options(joinedload(Committee.event))
            .distinct()
            .order_by(Committee.name)
        )
        return list(db.execute(stmt).scalars().unique().all())

    async def export_assignments(self, db: Session) -> List[VolunteerAssignment]:
        stmt = (
            select(VolunteerAssignment)
            .join(Volunteer, Volunteer.id == VolunteerAssignment.volunteer_id)
            .join(Committee, Committee.id == VolunteerAssignment.committee_id)
            .join(Event, Event.id == VolunteerAssignment.event_id)
            .options(
                joinedload(VolunteerAssignment.volunteer),
                joinedload(VolunteerAssignment.committee),
                joinedload(VolunteerAssignment.event),
            )
            .order_by(Event.name, Committee.name, Volunteer.name)
        )
        return list(db.execute(stmt).scalars().unique().all())
