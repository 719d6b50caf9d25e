from .auth_manage import router as auth_manage
from .volunteer_manage import router as volunteer_manage
from .assignment_manage import router as assignment_manage
from .event_manage import router as event_manage
from .attendance_manage import router as attendance_manage
from .health_check import router as health_check


__all__ = [
    "auth_manage", "volunteer_manage", "assignment_manage",
    "event_manage", "attendance_manage", "health_check",
]
