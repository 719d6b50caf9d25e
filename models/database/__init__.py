# Database models package

# 导入所有数据库模型
from .enums import *
from .faculty import *
from .volunteer import *
from .event import *
from .assignment import *
from .attendance import *

# 定义公共接口
__all__ = ["UserRole", "AssignmentRole", "AssignmentStatus", "Faculty", "Volunteer",
           "Event", "Committee", "VolunteerAssignment", "Attendance"]
