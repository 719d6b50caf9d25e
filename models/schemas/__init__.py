# Pydantic schemas package

# 导入所有Pydantic模型
from .auth import *
from .volunteer import *
from .event import *
from .assignment import *
from .attendance import *
from .roster import *

# 定义公共接口
__all__ = [
    "LoginRequest", "VolunteerRegister", "FacultyRegister", "FacultyResponse", "SetPasswordRequest",
    "VolunteerBase", "VolunteerCreate", "VolunteerUpdate", "VolunteerResponse",
    "EventCreate", "EventResponse", "CommitteeCreate", "CommitteeUpdate", "CommitteeResponse",
    "AssignmentUpsert", "AssignmentUpdate", "AssignmentResponse", "MyAssignmentResponse",
    "CheckInRequest", "CheckOutRequest", "CloseoutResponse",
    "PendingShiftRow", "ActiveCheckinRow", "AssignmentStatusRow", "AttendanceRecordRow",
    "RowError", "ImportSummary",
]
