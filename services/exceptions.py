# -*- coding: utf-8 -*-
"""
业务异常定义

服务层只抛出这些异常（或原样向上抛出存储层异常），
路由层按 status_code / code 统一转换为 HTTP 错误响应。
"""
from typing import Optional


class ServiceError(Exception):
    """业务异常基类"""
    status_code: int = 500
    code: str = "server_error"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class ValidationError(ServiceError):
    """输入不合法（400）"""
    status_code = 400
    code = "validation_error"


class AuthenticationError(ServiceError):
    """认证失败（401）"""
    status_code = 401
    code = "auth_failed"


class PermissionDeniedError(ServiceError):
    """无权操作（403）"""
    status_code = 403
    code = "forbidden"


class NotFoundError(ServiceError):
    """引用的记录不存在（404）"""
    status_code = 404
    code = "not_found"


class ConflictError(ServiceError):
    """与现有状态冲突（409）"""
    status_code = 409
    code = "conflict"


class InvalidAssignmentError(ValidationError):
    code = "invalid_assignment"


class AlreadyCheckedInError(ConflictError):
    code = "already_checked_in"


class AttendanceNotOpenError(NotFoundError):
    code = "attendance_not_open"


class AlreadyCheckedOutError(ConflictError):
    code = "already_checked_out"


class IdentityConflictError(ConflictError):
    code = "identity_conflict"
