# 从新模块导入所有模型以保持统一的导入入口
from models.schemas.auth import (
    LoginRequest, VolunteerRegister, FacultyRegister, FacultyResponse, SetPasswordRequest
)
from models.schemas.volunteer import (
    VolunteerBase, VolunteerCreate, VolunteerUpdate, VolunteerResponse
)
from models.schemas.event import (
    EventCreate, EventResponse, CommitteeCreate, CommitteeUpdate, CommitteeResponse
)
from models.schemas.assignment import (
    AssignmentUpsert, AssignmentUpdate, AssignmentResponse, MyAssignmentResponse
)
from models.schemas.attendance import (
    CheckInRequest, CheckOutRequest, CloseoutResponse,
    PendingShiftRow, ActiveCheckinRow, AssignmentStatusRow, AttendanceRecordRow
)
from models.schemas.roster import RowError, ImportSummary

__all__ = [
    # 认证相关模型
    'LoginRequest', 'VolunteerRegister', 'FacultyRegister', 'FacultyResponse', 'SetPasswordRequest',

    # 志愿者相关模型
    'VolunteerBase', 'VolunteerCreate', 'VolunteerUpdate', 'VolunteerResponse',

    # 活动与委员会
    'EventCreate', 'EventResponse', 'CommitteeCreate', 'CommitteeUpdate', 'CommitteeResponse',

    # 排班
    'AssignmentUpsert', 'AssignmentUpdate', 'AssignmentResponse', 'MyAssignmentResponse',

    # 出勤
    'CheckInRequest', 'CheckOutRequest', 'CloseoutResponse',
    'PendingShiftRow', 'ActiveCheckinRow', 'AssignmentStatusRow', 'AttendanceRecordRow',

    # 名册导入
    'RowError', 'ImportSummary',
]
