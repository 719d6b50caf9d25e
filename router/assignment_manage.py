# 标准库
from datetime import date
from typing import Optional

# 第三方库
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

# 自定义模块
from db.databases import get_db
from services.assignment_service import AssignmentService, assignment_to_dict
from services.auth_dependencies import require_admin
from services.auth_service import AuthenticatedUser
from services.exceptions import ServiceError, ValidationError
from services.export_service import assignments_csv
from services.query_filters import ShiftScope
from schemas import AssignmentUpsert, AssignmentUpdate, AssignmentResponse
from utils.time_utils import parse_date
from .helpers import resp, raise_service_error, raise_server_error, csv_response, shift_scope_params

router = APIRouter(prefix="/api/assignments", tags=["Assignments"])

# Services
assignment_service = AssignmentService()


def _assignment_data(assignment) -> dict:
    return AssignmentResponse.model_validate(assignment_to_dict(assignment)).model_dump()


def _start_date_bound(value: Optional[str], field: str) -> Optional[date]:
    try:
        return parse_date(value)
    except ValueError:
        raise ValidationError(f"{field} 必须为 YYYY-MM-DD 格式")


@router.post("/", summary="创建排班", response_model=dict, status_code=status.HTTP_201_CREATED)
async def create_assignment(
    payload: AssignmentUpsert,
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_admin)
):
    """同一 (活动, 委员会, 志愿者) 已有排班时覆盖原排班，与名册导入规则一致"""
    try:
        assignment, created = await assignment_service.create_assignment(db, payload)
        return resp(_assignment_data(assignment), message="创建成功" if created else "已覆盖原排班")
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("创建排班", e)


@router.get("/", summary="排班列表", response_model=dict)
async def list_assignments(
    scope: ShiftScope = Depends(shift_scope_params),
    start_date: Optional[str] = Query(None, description="开始日期下限 YYYY-MM-DD"),
    end_date: Optional[str] = Query(None, description="开始日期上限 YYYY-MM-DD"),
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_admin)
):
    try:
        assignments = await assignment_service.list_assignments(
            db,
            scope,
            _start_date_bound(start_date, "start_date"),
            _start_date_bound(end_date, "end_date"),
        )
        return resp([_assignment_data(a) for a in assignments])
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("查询排班列表", e)


@router.get("/export_csv", summary="导出排班")
async def export_assignments(
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_admin)
):
    try:
        assignments = await assignment_service.export_assignments(db)
        return csv_response(assignments_csv(assignments), "assignments_export.csv")
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("导出排班", e)


@router.get("/{assignment_id}", summary="获取排班详情", response_model=dict)
async def get_assignment(
    assignment_id: int,
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_admin)
):
    try:
        assignment = await assignment_service.get_assignment(db, assignment_id)
        return resp(_assignment_data(assignment))
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("获取排班详情", e)


@router.put("/{assignment_id}", summary="更新排班", response_model=dict)
async def update_assignment(
    assignment_id: int,
    payload: AssignmentUpdate,
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_admin)
):
    try:
        assignment = await assignment_service.update_assignment(db, assignment_id, payload)
        return resp(_assignment_data(assignment), message="更新成功")
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("更新排班", e)


@router.delete("/{assignment_id}", summary="删除排班", response_model=dict)
async def delete_assignment(
    assignment_id: int,
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_admin)
):
    try:
        await assignment_service.delete_assignment(db, assignment_id)
        return resp({"deleted": True, "id": assignment_id}, message="删除成功")
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("删除排班", e)
