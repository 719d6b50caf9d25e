# 标准库
from typing import Any, Optional, Callable, List, Dict

# 第三方库
from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session
from loguru import logger

# 自定义模块
from db.databases import get_db
from models.database import UserRole
from .auth_service import AuthService, AuthenticatedUser

# 单例服务实例（与项目风格保持一致）
auth_service = AuthService()


def _raise_http(status_code: int, message: str, code: str):
    """统一错误响应格式"""
    raise HTTPException(status_code=status_code, detail={"code": code, "message": message})


def extract_bearer_token(authorization: Optional[str]) -> str:
    """从Authorization头中提取Bearer token"""
    if not authorization:
        _raise_http(status.HTTP_401_UNAUTHORIZED, "缺少Authorization头", "unauthorized")
    parts: list[str] = authorization.split()  # type: ignore
    if len(parts) != 2 or parts[0].lower() != "bearer":
        _raise_http(status.HTTP_401_UNAUTHORIZED, "Authorization格式错误，应为'Bearer <token>'", "unauthorized")
    return parts[1]


async def get_current_user(
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db)
) -> AuthenticatedUser:
    """依赖函数：从Token中解析并返回当前身份
    - 验证access token
    - 按 sub/role 重新加载账号，已删除的账号返回401
    """
    token = extract_bearer_token(authorization)

    payload: Dict[str, Any] | None = auth_service.verify_token(token, expected_type="access")
    if not payload:
        _raise_http(status.HTTP_401_UNAUTHORIZED, "无效或过期的Token", "unauthorized")

    user_id = payload.get("sub")  # type: ignore
    role = payload.get("role")  # type: ignore
    if not user_id or not role:
        _raise_http(status.HTTP_401_UNAUTHORIZED, "Token缺少用户标识", "unauthorized")

    try:
        user = await auth_service.load_identity(db, int(user_id), role)
    except ValueError:
        logger.warning(f"Token中的用户标识非法 sub={user_id}")
        user = None
    if not user:
        _raise_http(status.HTTP_401_UNAUTHORIZED, "用户不存在或已被删除", "unauthorized")
    return user  # type: ignore


def require_auth(current_user: AuthenticatedUser = Depends(dependency=get_current_user)) -> AuthenticatedUser:
    """依赖：要求已登录"""
    return current_user


def require_admin(current_user: AuthenticatedUser = Depends(dependency=get_current_user)) -> AuthenticatedUser:
    """依赖：要求管理员权限"""
    if current_user.role != UserRole.ADMIN.value:
        _raise_http(status.HTTP_403_FORBIDDEN, "需要管理员权限", "forbidden")
    return current_user


def require_roles(roles: List[str]) -> Callable:
    """依赖工厂：要求特定角色之一
    示例用法：
        @router.get("/path")
        async def handler(current_user: AuthenticatedUser = Depends(require_roles(["admin", "faculty"]))):
            ...
    """
    def dependency(current_user: AuthenticatedUser = Depends(dependency=get_current_user)) -> AuthenticatedUser:
        if current_user.role not in roles:
            _raise_http(status.HTTP_403_FORBIDDEN, f"需要角色之一: {', '.join(roles)}", "forbidden")
        return current_user

    return dependency


# 常用角色组合
require_staff = require_roles([UserRole.ADMIN.value, UserRole.FACULTY.value])
require_volunteer = require_roles([UserRole.ADMIN.value, UserRole.VOLUNTEER.value])
require_volunteer_self = require_roles([UserRole.VOLUNTEER.value])
