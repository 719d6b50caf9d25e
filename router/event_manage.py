# 标准库
from typing import Optional

# 第三方库
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

# 自定义模块
from db.databases import get_db
from services.auth_dependencies import require_auth, require_admin
from services.auth_service import AuthenticatedUser
from services.event_service import EventService, committee_to_dict
from services.exceptions import ServiceError
from schemas import EventCreate, EventResponse, CommitteeCreate, CommitteeUpdate, CommitteeResponse
from .helpers import resp, raise_service_error, raise_server_error

router = APIRouter(prefix="/api", tags=["Events & Committees"])

# Services
event_service = EventService()


def _event_data(event) -> dict:
    return EventResponse.model_validate(event).model_dump()


def _committee_data(committee) -> dict:
    return CommitteeResponse.model_validate(committee_to_dict(committee)).model_dump()


# ============================= 活动 =============================
@router.post("/events/", summary="创建活动", response_model=dict, status_code=status.HTTP_201_CREATED)
async def create_event(
    payload: EventCreate,
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_admin)
):
    try:
        event = await event_service.create_event(db, payload)
        return resp(_event_data(event), message="创建成功")
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("创建活动", e)


@router.get("/events/", summary="活动列表", response_model=dict)
async def list_events(
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_auth)
):
    try:
        events = await event_service.list_events(db)
        return resp([_event_data(e) for e in events])
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("查询活动列表", e)


@router.get("/events/{event_id}", summary="获取活动详情", response_model=dict)
async def get_event(
    event_id: int,
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_auth)
):
    try:
        event = await event_service.get_event(db, event_id)
        return resp(_event_data(event))
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("获取活动详情", e)


@router.delete("/events/{event_id}", summary="删除活动", response_model=dict)
async def delete_event(
    event_id: int,
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_admin)
):
    """删除活动，级联删除委员会、排班与出勤记录"""
    try:
        await event_service.delete_event(db, event_id)
        return resp({"deleted": True, "id": event_id}, message="删除成功")
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("删除活动", e)


# ============================= 委员会 =============================
@router.post("/committees/", summary="创建委员会", response_model=dict, status_code=status.HTTP_201_CREATED)
async def create_committee(
    payload: CommitteeCreate,
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_admin)
):
    """同一活动下委员会名称唯一，重复时返回409"""
    try:
        committee = await event_service.create_committee(db, payload)
        return resp(_committee_data(committee), message="创建成功")
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("创建委员会", e)


@router.get("/committees/", summary="委员会列表", response_model=dict)
async def list_committees(
    event_id: Optional[int] = Query(None, description="活动ID"),
    limit: int = Query(100, description="每页数量，范围 1-500"),
    offset: int = Query(0, description="偏移量"),
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_auth)
):
    try:
        committees = await event_service.list_committees(db, event_id, limit, offset)
        return resp([_committee_data(c) for c in committees])
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("查询委员会列表", e)


@router.get("/committees/{committee_id}", summary="获取委员会详情", response_model=dict)
async def get_committee(
    committee_id: int,
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_auth)
):
    try:
        committee = await event_service.get_committee(db, committee_id)
        return resp(_committee_data(committee))
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("获取委员会详情", e)


@router.put("/committees/{committee_id}", summary="更新委员会", response_model=dict)
async def update_committee(
    committee_id: int,
    payload: CommitteeUpdate,
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_admin)
):
    try:
        committee = await event_service.update_committee(db, committee_id, payload)
        return resp(_committee_data(committee), message="更新成功")
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("更新委员会", e)


@router.delete("/committees/{committee_id}", summary="删除委员会", response_model=dict)
async def delete_committee(
    committee_id: int,
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_admin)
):
    try:
        await event_service.delete_committee(db, committee_id)
        return resp({"deleted": True, "id": committee_id}, message="删除成功")
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("删除委员会", e)
