# 标准库
from typing import Optional

# 第三方库
from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.orm import Session
from loguru import logger

# 自定义模块
from db.databases import get_db
from services.assignment_service import AssignmentService
from services.auth_dependencies import require_admin, require_volunteer_self
from services.auth_service import AuthenticatedUser
from services.event_service import committee_to_dict
from services.exceptions import ServiceError
from services.export_service import volunteers_csv
from services.roster_import_service import RosterImportService
from services.volunteer_service import VolunteerService
from schemas import (
    VolunteerCreate, VolunteerUpdate, VolunteerResponse, SetPasswordRequest, ImportSummary,
    MyAssignmentResponse, CommitteeResponse
)
from .helpers import resp, raise_service_error, raise_server_error, pagination, csv_response

router = APIRouter(prefix="/api/volunteers", tags=["Volunteers"])

# Services
volunteer_service = VolunteerService()
assignment_service = AssignmentService()
roster_import_service = RosterImportService(volunteer_service.identity_service, assignment_service)


def _volunteer_data(volunteer) -> dict:
    return VolunteerResponse.model_validate(volunteer).model_dump()


# ============================= 本人自助 =============================
@router.get("/me", summary="获取本人资料", response_model=dict)
async def get_me(
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_volunteer_self)
):
    try:
        volunteer = await volunteer_service.get_volunteer(db, current_user.id)
        return resp(_volunteer_data(volunteer))
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("获取本人资料", e)


@router.post("/me/set-password", summary="设置或修改本人密码", response_model=dict)
async def set_my_password(
    payload: SetPasswordRequest,
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_volunteer_self)
):
    """已设置密码时必须提供正确的旧密码"""
    try:
        await volunteer_service.set_password(db, current_user.id, payload.new_password, payload.old_password)
        return resp(message="密码已更新")
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("设置密码", e)


@router.get("/me/assignments", summary="本人排班", response_model=dict)
async def my_assignments(
    limit: int = Query(100, description="每页数量，范围 1-500"),
    offset: int = Query(0, description="偏移量"),
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_volunteer_self)
):
    """每条排班附带今天的在岗记录ID（active_attendance_id）与 is_checked_in_today"""
    try:
        items = await assignment_service.get_volunteer_assignments(db, current_user.id, limit, offset)
        return resp([MyAssignmentResponse.model_validate(item).model_dump() for item in items])
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("查询本人排班", e)


@router.get("/me/committees", summary="本人所属委员会", response_model=dict)
async def my_committees(
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_volunteer_self)
):
    try:
        committees = await assignment_service.get_volunteer_committees(db, current_user.id)
        return resp([CommitteeResponse.model_validate(committee_to_dict(c)).model_dump() for c in committees])
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("查询本人委员会", e)


# ============================= 导入导出 =============================
@router.get("/export_csv", summary="导出志愿者")
async def export_volunteers(
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_admin)
):
    try:
        volunteers = await volunteer_service.export_volunteers(db)
        return csv_response(volunteers_csv(volunteers), "volunteers_export.csv")
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("导出志愿者", e)


@router.post("/bulk", summary="批量导入名册", response_model=ImportSummary)
async def bulk_import(
    event_id: int = Query(..., description="活动ID"),
    committee_id: int = Query(..., description="委员会ID"),
    file: UploadFile = File(..., description="名册 CSV 文件（UTF-8，可带BOM）"),
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_admin)
):
    """
    导入名册到指定活动与委员会

    - 按邮箱、学号依次识别已有志愿者，都未命中时新建
    - 同一 (活动, 委员会, 志愿者) 的排班重复导入时覆盖
    - 行级错误记录在 errors 中（行号含表头），其余行照常导入
    """
    try:
        content = await file.read()
        logger.info(f"管理员 {current_user.id} 导入名册: file={file.filename} size={len(content)}")
        return await roster_import_service.import_roster(db, event_id, committee_id, content)
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("导入名册", e)


# ============================= 管理员增删改查 =============================
@router.post("/", summary="创建志愿者", response_model=dict, status_code=status.HTTP_201_CREATED)
async def create_volunteer(
    payload: VolunteerCreate,
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_admin)
):
    try:
        volunteer = await volunteer_service.create_volunteer(db, payload)
        return resp(_volunteer_data(volunteer), message="创建成功")
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("创建志愿者", e)


@router.get("/", summary="志愿者列表", response_model=dict)
async def list_volunteers(
    page: int = Query(1, ge=1, description="页码，从1开始"),
    page_size: int = Query(20, ge=1, le=100, description="每页数量，最大100"),
    keyword: Optional[str] = Query(None, description="姓名/邮箱/学号关键词"),
    committee_id: Optional[int] = Query(None, description="只看该委员会下有排班的志愿者"),
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_admin)
):
    try:
        volunteers, total = await volunteer_service.get_volunteers(
            db, page=page, page_size=page_size, keyword=keyword, committee_id=committee_id
        )
        return resp({
            "items": [_volunteer_data(v) for v in volunteers],
            "pagination": pagination(page, page_size, total),
        })
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("查询志愿者列表", e)


@router.get("/{volunteer_id}", summary="获取志愿者详情", response_model=dict)
async def get_volunteer(
    volunteer_id: int,
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_admin)
):
    try:
        volunteer = await volunteer_service.get_volunteer(db, volunteer_id)
        return resp(_volunteer_data(volunteer))
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("获取志愿者详情", e)


@router.put("/{volunteer_id}", summary="更新志愿者", response_model=dict)
async def update_volunteer(
    volunteer_id: int,
    payload: VolunteerUpdate,
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_admin)
):
    try:
        volunteer = await volunteer_service.update_volunteer(db, volunteer_id, payload)
        return resp(_volunteer_data(volunteer), message="更新成功")
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("更新志愿者", e)


@router.delete("/{volunteer_id}", summary="删除志愿者", response_model=dict)
async def delete_volunteer(
    volunteer_id: int,
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_admin)
):
    """删除志愿者，同时删除其排班与出勤记录"""
    try:
        await volunteer_service.delete_volunteer(db, volunteer_id)
        return resp({"deleted": True, "id": volunteer_id}, message="删除成功")
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("删除志愿者", e)
