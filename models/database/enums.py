# 标准库
from enum import Enum


class UserRole(str, Enum):
    """身份角色枚举（令牌中的 role）"""
    ADMIN = "admin"
    FACULTY = "faculty"
    VOLUNTEER = "volunteer"


class AssignmentRole(str, Enum):
    """排班角色枚举"""
    VOLUNTEER = "volunteer"
    LEAD = "lead"
    SUPPORT = "support"


class AssignmentStatus(str, Enum):
    """排班状态枚举"""
    ASSIGNED = "assigned"
    STANDBY = "standby"
    CANCELLED = "cancelled"
