# 标准库
from typing import Optional

# 第三方库
from fastapi import APIRouter, Depends, HTTPException, status, Header
from sqlalchemy.orm import Session
from loguru import logger

# 自定义模块
from db.databases import get_db
from services.auth_dependencies import auth_service, extract_bearer_token, require_auth, require_admin
from services.auth_service import AuthenticatedUser
from services.exceptions import ServiceError
from schemas import LoginRequest, VolunteerRegister, FacultyRegister, FacultyResponse, VolunteerResponse
from .helpers import resp, raise_http, raise_service_error, raise_server_error

router = APIRouter(prefix="/api", tags=["Auth"])


# ============================= 认证相关 =============================
@router.post("/auth/login", summary="登录", response_model=dict)
async def login(payload: LoginRequest, db: Session = Depends(get_db)):
    """教职工与志愿者共用登录入口，返回access与refresh令牌"""
    try:
        issued = await auth_service.login_and_issue(db, payload.email, payload.password)
        if not issued:
            raise_http(status.HTTP_401_UNAUTHORIZED, "邮箱或密码错误", "auth_failed")
        user, access_token, refresh_token = issued
        return resp({
            "access_token": access_token,
            "refresh_token": refresh_token,
            "role": user.role,
            "user_id": user.id,
        })
    except HTTPException:
        raise
    except Exception as e:
        raise_server_error("登录", e)


@router.post("/auth/logout", summary="登出", response_model=dict)
async def logout(
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
    current_user: AuthenticatedUser = Depends(require_auth)
):
    """撤销当前Authorization中的令牌"""
    try:
        token = extract_bearer_token(authorization)
        if not auth_service.revoke_token(token):
            raise_http(status.HTTP_400_BAD_REQUEST, "令牌撤销失败", "revoke_failed")
        logger.info(f"登出成功 user_id={current_user.id} role={current_user.role}")
        return resp({"revoked": True})
    except HTTPException:
        raise
    except Exception as e:
        raise_server_error("登出", e)


@router.post("/auth/refresh", summary="刷新令牌", response_model=dict)
async def refresh(
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db)
):
    """使用Authorization中的refresh令牌刷新access与refresh（令牌轮换）"""
    try:
        refresh_token = extract_bearer_token(authorization)
        payload = auth_service.verify_token(refresh_token, expected_type="refresh")
        if not payload:
            raise_http(status.HTTP_401_UNAUTHORIZED, "无效或过期的刷新令牌", "unauthorized")
        user = await auth_service.load_identity(db, int(payload["sub"]), payload.get("role"))
        if not user:
            raise_http(status.HTTP_401_UNAUTHORIZED, "用户不存在或已删除", "unauthorized")
        new_tokens = auth_service.refresh_access_token(refresh_token, user)
        if not new_tokens:
            raise_http(status.HTTP_400_BAD_REQUEST, "刷新令牌失败", "refresh_failed")
        access_token, new_refresh = new_tokens
        return resp({"access_token": access_token, "refresh_token": new_refresh})
    except HTTPException:
        raise
    except Exception as e:
        raise_server_error("刷新令牌", e)


@router.get("/auth/profile", summary="获取当前身份信息", response_model=dict)
async def profile(current_user: AuthenticatedUser = Depends(require_auth)):
    return resp({
        "id": current_user.id,
        "role": current_user.role,
        "email": current_user.email,
        "name": current_user.name,
    })


# ============================= 注册 =============================
@router.post("/auth/register/volunteer", summary="志愿者注册", response_model=dict,
             status_code=status.HTTP_201_CREATED)
async def register_volunteer(payload: VolunteerRegister, db: Session = Depends(get_db)):
    """志愿者自助注册；导入时创建、尚无密码的同邮箱账号会被认领"""
    try:
        volunteer = await auth_service.register_volunteer(db, payload)
        return resp(VolunteerResponse.model_validate(volunteer).model_dump(), message="注册成功")
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("志愿者注册", e)


@router.post("/auth/register/faculty", summary="注册教职工（管理员）", response_model=dict,
             status_code=status.HTTP_201_CREATED)
async def register_faculty(
    payload: FacultyRegister,
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_admin)
):
    try:
        faculty = await auth_service.register_faculty(db, payload)
        logger.info(f"管理员 {current_user.id} 创建了教职工 {faculty.id}")
        return resp(FacultyResponse.model_validate(faculty).model_dump(), message="注册成功")
    except ServiceError as se:
        raise_service_error(se)
    except Exception as e:
        raise_server_error("教职工注册", e)
