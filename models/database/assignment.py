# -*- coding: utf-8 -*-
from datetime import datetime
from typing import Optional, List, TYPE_CHECKING
from sqlalchemy import String, Text, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

# 自定义库
from db.base import AuditedBase, IdType
from models.database.enums import AssignmentRole, AssignmentStatus

if TYPE_CHECKING:
    from models.database.attendance import Attendance
    from models.database.event import Committee, Event
    from models.database.volunteer import Volunteer


class VolunteerAssignment(AuditedBase):
    """排班：志愿者在某活动某委员会中的安排

    (event_id, committee_id, volunteer_id) 唯一；角色、状态、班次与时间窗可原地修改。
    """
    __tablename__ = "volunteer_assignments"

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True, comment="主键ID")
    event_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, comment="活动ID"
    )
    committee_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("committees.id", ondelete="CASCADE"), nullable=False, comment="委员会ID"
    )
    volunteer_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("volunteers.id", ondelete="CASCADE"), nullable=False, comment="志愿者ID"
    )
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AssignmentRole.VOLUNTEER.value,
        comment="角色：volunteer/lead/support"
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AssignmentStatus.ASSIGNED.value,
        comment="状态：assigned/standby/cancelled"
    )
    reporting_time: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, comment="报到时间")
    shift: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, comment="班次标签")
    start_time: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, comment="开始时间")
    end_time: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, comment="结束时间")
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="备注")

    volunteer: Mapped["Volunteer"] = relationship("Volunteer", back_populates="assignments")
    committee: Mapped["Committee"] = relationship("Committee", back_populates="assignments")
    event: Mapped["Event"] = relationship("Event")
    attendances: Mapped[List["Attendance"]] = relationship(
        "Attendance", back_populates="assignment",
        cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        UniqueConstraint("event_id", "committee_id", "volunteer_id", name="uq_assignments_event_committee_volunteer"),
        Index("idx_assignments_event_committee", "event_id", "committee_id"),
        Index("idx_assignments_volunteer", "volunteer_id"),
        Index("idx_assignments_start_time", "start_time"),
    )

    def __repr__(self):
        return (f"<VolunteerAssignment(id={self.id}, event_id={self.event_id}, "
                f"committee_id={self.committee_id}, volunteer_id={self.volunteer_id}, shift='{self.shift}')>")
