# 标准库
from datetime import date, datetime
from typing import Optional, List

# 第三方库
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from loguru import logger

# 自定义模块
from models.database import Attendance, VolunteerAssignment, UserRole
from utils.time_utils import local_now, parse_iso_datetime
from .exceptions import (
    ServiceError, ValidationError, PermissionDeniedError, InvalidAssignmentError,
    AlreadyCheckedInError, AttendanceNotOpenError, AlreadyCheckedOutError,
)
from .query_filters import ShiftScope


def _resolve_timestamp(value: Optional[str], field: str = "time") -> datetime:
    """解析请求中的时间，缺省为当前时间"""
    if value is None or not str(value).strip():
        return local_now()
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"{field} 必须为 ISO-8601 格式，例如 2024-01-31T09:00:00+05:30")


class AttendanceService(object):
    """出勤状态机：无记录 → 在岗（签到）→ 已签退（签退）

    同一排班同一自然日最多一条在岗记录。该规则由 (assignment_id, open_day)
    唯一约束在插入时保证，应用层的预检查只用于给出更明确的错误信息。
    """

    def _find_open(self, db: Session, assignment_id: int, day: date) -> Optional[Attendance]:
        """查找排班在某天的在岗记录"""
        return db.query(Attendance).filter(
            Attendance.assignment_id == assignment_id,
            Attendance.check_in_date == day,
            Attendance.check_out_time.is_(None),
        ).first()

    @staticmethod
    def _ensure_owner(assignment: VolunteerAssignment, actor_id: Optional[int], actor_role: Optional[str]) -> None:
        """志愿者只能操作自己的排班；管理员与教职工不受限"""
        if actor_role == UserRole.VOLUNTEER.value and assignment.volunteer_id != actor_id:
            raise PermissionDeniedError("只能为自己的排班签到/签退")

    async def check_in(self,
                       db: Session,
                       assignment_id: int,
                       lat: Optional[float] = None,
                       lng: Optional[float] = None,
                       at: Optional[str] = None,
                       actor_id: Optional[int] = None,
                       actor_role: Optional[str] = None) -> Attendance:
        """签到：为排班创建一条未签退的出勤记录

        Raises:
            InvalidAssignmentError: 排班ID非法或不存在
            AlreadyCheckedInError: 同一天已有在岗记录
        """
        try:
            if assignment_id is None or assignment_id <= 0:
                raise InvalidAssignmentError("无效的 assignment_id")
            if lat is not None and not -90 <= lat <= 90:
                raise ValidationError("lat 必须在 -90 到 90 之间")
            if lng is not None and not -180 <= lng <= 180:
                raise ValidationError("lng 必须在 -180 到 180 之间")
            ts = _resolve_timestamp(at)

            assignment = db.get(VolunteerAssignment, assignment_id)
            if assignment is None:
                raise InvalidAssignmentError(f"排班 {assignment_id} 不存在")
            self._ensure_owner(assignment, actor_id, actor_role)

            day = ts.date()
            if self._find_open(db, assignment_id, day) is not None:
                raise AlreadyCheckedInError(f"排班 {assignment_id} 在 {day.isoformat()} 已签到且未签退")

            attendance = Attendance(
                assignment_id=assignment_id,
                check_in_time=ts,
                check_in_date=day,
                open_day=day,
                latitude=lat,
                longitude=lng,
            )
            db.add(attendance)
            db.commit()
            db.refresh(attendance)
            logger.info(f"签到成功: attendance_id={attendance.id} assignment_id={assignment_id} time={ts.isoformat()}")
            return attendance
        except IntegrityError as ie:
            # 并发签到：另一请求已先插入同日在岗记录
            db.rollback()
            logger.warning(f"签到冲突（唯一约束）: assignment_id={assignment_id} {ie.orig}")
            raise AlreadyCheckedInError(f"排班 {assignment_id} 今天已签到且未签退")
        except ServiceError as se:
            logger.warning(f"签到被拒绝: assignment_id={assignment_id} {se.message}")
            db.rollback()
            raise
        except Exception as e:
            logger.error(f"签到失败: assignment_id={assignment_id} {e}")
            db.rollback()
            raise

    async def check_out(self,
                        db: Session,
                        attendance_id: int,
                        at: Optional[str] = None,
                        actor_id: Optional[int] = None,
                        actor_role: Optional[str] = None) -> Attendance:
        """签退：设置签退时间，记录不再重新打开

        Raises:
            AttendanceNotOpenError: 记录不存在
            AlreadyCheckedOutError: 记录存在但已签退
        """
        try:
            if attendance_id is None or attendance_id <= 0:
                raise ValidationError("无效的 attendance_id")
            ts = _resolve_timestamp(at)

            attendance = db.get(Attendance, attendance_id)
            if attendance is None:
                raise AttendanceNotOpenError(f"出勤记录 {attendance_id} 不存在或未在岗")
            self._ensure_owner(attendance.assignment, actor_id, actor_role)
            if attendance.check_out_time is not None:
                raise AlreadyCheckedOutError(f"出勤记录 {attendance_id} 已签退")
            if ts < attendance.check_in_time:
                raise ValidationError("签退时间不能早于签到时间")

            result = db.execute(
                update(Attendance)
                .where(Attendance.id == attendance_id, Attendance.check_out_time.is_(None))
                .values(check_out_time=ts, open_day=None)
            )
            if result.rowcount == 0:
                # 检查与更新之间被其他请求签退
                raise AlreadyCheckedOutError(f"出勤记录 {attendance_id} 已签退")
            db.commit()
            db.refresh(attendance)
            logger.info(f"签退成功: attendance_id={attendance_id} time={ts.isoformat()}")
            return attendance
        except ServiceError as se:
            logger.warning(f"签退被拒绝: attendance_id={attendance_id} {se.message}")
            db.rollback()
            raise
        except Exception as e:
            logger.error(f"签退失败: attendance_id={attendance_id} {e}")
            db.rollback()
            raise

    def _close_one(self, db: Session, attendance_id: int, ts: datetime) -> int:
        """关闭单条在岗记录并立即提交，返回受影响行数"""
        result = db.execute(
            update(Attendance)
            .where(Attendance.id == attendance_id, Attendance.check_out_time.is_(None))
            .values(check_out_time=ts, open_day=None)
        )
        db.commit()
        return result.rowcount

    async def close_shift(self, db: Session, event_id: int, committee_id: int, shift: str) -> int:
        """批量签退某活动某委员会某班次（子串、不区分大小写）的全部在岗记录

        逐条独立提交；单条失败记录日志后继续，返回实际签退数量。
        """
        if not event_id or not committee_id or not (shift or "").strip():
            raise ValidationError("event_id、committee_id 与 shift 均为必填")

        scope = ShiftScope(event_id=event_id, committee_id=committee_id, shift=shift, paginate=False)
        stmt = scope.apply(
            select(Attendance.id)
            .join(VolunteerAssignment, VolunteerAssignment.id == Attendance.assignment_id)
            .where(Attendance.check_out_time.is_(None))
            .order_by(Attendance.id)
        )
        attendance_ids: List[int] = list(db.execute(stmt).scalars().all())
        db.rollback()  # 结束只读事务，后续每条单独提交

        ts = local_now()
        closed = 0
        for attendance_id in attendance_ids:
            try:
                closed += self._close_one(db, attendance_id, ts)
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"批量签退跳过 attendance_id={attendance_id}: {e}")

        logger.info(
            f"批量签退完成: event_id={event_id} committee_id={committee_id} shift={shift} "
            f"closed={closed}/{len(attendance_ids)}"
        )
        return closed
