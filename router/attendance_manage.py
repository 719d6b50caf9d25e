# 标准库
from datetime import date
from typing import List, Optional

# 第三方库
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

# 自定义模块
from db.databases import get_db
from services.attendance_service import AttendanceService
from services.projection_service import ShiftProjectionService
from services.auth_dependencies import require_staff, require_volunteer
from services.auth_service import AuthenticatedUser
from services.exceptions import ServiceError, ValidationError
from services.export_service import (
    render_csv, ATTENDANCE_COLUMNS, ACTIVE_CHECKIN_COLUMNS, PENDING_SHIFT_COLUMNS, ASSIGNMENT_STATUS_COLUMNS
)
from services.query_filters import ShiftScope
from schemas import (
    CheckInRequest, CheckOutRequest, CloseoutResponse,
    PendingShiftRow, ActiveCheckinRow, AssignmentStatusRow, AttendanceRecordRow
)
from utils.time_utils import parse_date, parse_date_or_today
from .helpers import raise_service_error, raise_server_error, csv_response, shift_scope_params

router = APIRouter(prefix="/api/attendance", tags=["Attendance"])

# Services
attendance_service = AttendanceService()
projection_service = ShiftProjectionService()


def _range_date(value: Optional[str], field: str) -> Optional[date]:
    try:
        return parse_date(value)
    except ValueError:
        raise ValidationError(f"{field} 必须为 YYYY-MM-DD 格式")


# ============================= 状态迁移 =============================
@router.post("/checkin", summary="签到", status_code=status.HTTP_201_CREATED)
async def check_in(
    payload: CheckInRequest,
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_volunteer),
):
    """为排班签到；同一排班同一天已有在岗记录时返回409"""
    try:
        attendance = await attendance_service.check_in(
            db,
            assignment_id=payload.assignment_id,
            lat=payload.lat,
            lng=payload.lng,
            at=payload.time,
            actor_id=current_user.id,
            actor_role=current_user.role,
        )
        return {"status": "checked_in", "attendance_id": attendance.id}
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("签到", e)


@router.post("/checkout", summary="签退", status_code=status.HTTP_204_NO_CONTENT)
async def check_out(
    payload: CheckOutRequest,
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_volunteer),
):
    """签退；记录不存在返回404，已签退返回409"""
    try:
        await attendance_service.check_out(
            db,
            attendance_id=payload.attendance_id,
            at=payload.time,
            actor_id=current_user.id,
            actor_role=current_user.role,
        )
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("签退", e)


@router.post("/checkout-shift", summary="按班次批量签退", response_model=CloseoutResponse)
async def checkout_shift(
    event_id: Optional[int] = Query(None, description="活动ID（必填）"),
    committee_id: Optional[int] = Query(None, description="委员会ID（必填）"),
    shift: Optional[str] = Query(None, description="班次（必填，子串匹配）"),
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_staff),
):
    """关闭匹配班次的全部在岗记录，逐条提交，返回实际签退数量"""
    try:
        closed = await attendance_service.close_shift(db, event_id, committee_id, shift)
        return {"message": f"已签退 {closed} 条在岗记录", "closed_count": closed}
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("批量签退", e)


# ============================= 只读视图 =============================
@router.get("/shifts-without-checkin", summary="应到未签到的排班", response_model=List[PendingShiftRow])
async def shifts_without_checkin(
    scope: ShiftScope = Depends(shift_scope_params),
    date_: Optional[str] = Query(None, alias="date", description="YYYY-MM-DD，默认今天"),
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_staff),
):
    try:
        return await projection_service.shifts_without_checkin(db, scope, parse_date_or_today(date_))
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("查询未签到排班", e)


@router.get("/shifts-without-checkin/export_csv", summary="导出应到未签到的排班")
async def export_shifts_without_checkin(
    scope: ShiftScope = Depends(shift_scope_params),
    date_: Optional[str] = Query(None, alias="date", description="YYYY-MM-DD，默认今天"),
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_staff),
):
    try:
        target_date = parse_date_or_today(date_)
        rows = await projection_service.shifts_without_checkin(db, scope.unpaged(), target_date)
        return csv_response(render_csv(PENDING_SHIFT_COLUMNS, rows),
                            f"shifts_without_checkin_{target_date.isoformat()}.csv")
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("导出未签到排班", e)


@router.get("/active-in-shift", summary="班次内当前在岗", response_model=List[ActiveCheckinRow])
async def active_in_shift(
    scope: ShiftScope = Depends(shift_scope_params),
    date_: Optional[str] = Query(None, alias="date", description="签到日期 YYYY-MM-DD，默认今天"),
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_staff),
):
    try:
        return await projection_service.active_checkins(db, scope, parse_date_or_today(date_))
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("查询班次在岗", e)


@router.get("/active-in-shift/export_csv", summary="导出班次内当前在岗")
async def export_active_in_shift(
    scope: ShiftScope = Depends(shift_scope_params),
    date_: Optional[str] = Query(None, alias="date", description="签到日期 YYYY-MM-DD，默认今天"),
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_staff),
):
    try:
        on_date = parse_date_or_today(date_)
        rows = await projection_service.active_checkins(db, scope.unpaged(), on_date)
        return csv_response(render_csv(ACTIVE_CHECKIN_COLUMNS, rows), f"active_in_shift_{on_date.isoformat()}.csv")
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("导出班次在岗", e)


@router.get("/active-in-committee", summary="委员会内当前在岗", response_model=List[ActiveCheckinRow])
async def active_in_committee(
    scope: ShiftScope = Depends(shift_scope_params),
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_staff),
):
    """committee_id 必填，不限签到日期"""
    try:
        return await projection_service.active_in_committee(db, scope)
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("查询委员会在岗", e)


@router.get("/assignments-status", summary="排班在岗状态", response_model=List[AssignmentStatusRow])
async def assignments_status(
    scope: ShiftScope = Depends(shift_scope_params),
    attendance_check_date: Optional[str] = Query(None, description="参考日期 YYYY-MM-DD，默认今天"),
    assignment_start_date: Optional[str] = Query(None, description="排班开始日期下限 YYYY-MM-DD"),
    assignment_end_date: Optional[str] = Query(None, description="排班开始日期上限 YYYY-MM-DD"),
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_staff),
):
    try:
        return await projection_service.assignment_status(
            db,
            scope,
            reference_date=parse_date_or_today(attendance_check_date, "attendance_check_date"),
            start_date=_range_date(assignment_start_date, "assignment_start_date"),
            end_date=_range_date(assignment_end_date, "assignment_end_date"),
        )
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("查询排班在岗状态", e)


@router.get("/assignments-status/export_csv", summary="导出排班在岗状态")
async def export_assignments_status(
    scope: ShiftScope = Depends(shift_scope_params),
    attendance_check_date: Optional[str] = Query(None, description="参考日期 YYYY-MM-DD，默认今天"),
    assignment_start_date: Optional[str] = Query(None),
    assignment_end_date: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_staff),
):
    try:
        reference_date = parse_date_or_today(attendance_check_date, "attendance_check_date")
        rows = await projection_service.assignment_status(
            db,
            scope.unpaged(),
            reference_date=reference_date,
            start_date=_range_date(assignment_start_date, "assignment_start_date"),
            end_date=_range_date(assignment_end_date, "assignment_end_date"),
        )
        return csv_response(render_csv(ASSIGNMENT_STATUS_COLUMNS, rows),
                            f"assignments_status_{reference_date.isoformat()}.csv")
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("导出排班在岗状态", e)


@router.get("/", summary="出勤记录列表", response_model=List[AttendanceRecordRow])
async def list_attendance(
    scope: ShiftScope = Depends(shift_scope_params),
    start_date: Optional[str] = Query(None, description="签到日期下限 YYYY-MM-DD"),
    end_date: Optional[str] = Query(None, description="签到日期上限 YYYY-MM-DD"),
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_staff),
):
    try:
        return await projection_service.list_attendance(
            db, scope, _range_date(start_date, "start_date"), _range_date(end_date, "end_date")
        )
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("查询出勤记录", e)


@router.get("/export_csv", summary="导出出勤记录")
async def export_attendance(
    scope: ShiftScope = Depends(shift_scope_params),
    start_date: Optional[str] = Query(None, description="签到日期下限 YYYY-MM-DD"),
    end_date: Optional[str] = Query(None, description="签到日期上限 YYYY-MM-DD"),
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_staff),
):
    try:
        rows = await projection_service.list_attendance(
            db, scope.unpaged(), _range_date(start_date, "start_date"), _range_date(end_date, "end_date")
        )
        return csv_response(render_csv(ATTENDANCE_COLUMNS, rows), "attendance_export.csv")
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("导出出勤记录", e)
