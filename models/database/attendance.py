# -*- coding: utf-8 -*-
from datetime import date, datetime
from typing import Optional, TYPE_CHECKING
from sqlalchemy import Date, DateTime, Float, ForeignKey, UniqueConstraint, CheckConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

# 自定义库
from db.base import Base, IdType, _utc_now

if TYPE_CHECKING:
    from models.database.assignment import VolunteerAssignment


class Attendance(Base):
    """出勤记录：一次签到到签退的在岗区间

    open_day 在记录未签退时等于签到日期，签退后置空；
    (assignment_id, open_day) 唯一约束保证同一排班同一天最多一条未签退记录。
    """
    __tablename__ = "attendance"

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True, comment="主键ID")
    assignment_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("volunteer_assignments.id", ondelete="CASCADE"), nullable=False, comment="排班ID"
    )
    check_in_time: Mapped[datetime] = mapped_column(DateTime, nullable=False, comment="签到时间（活动时区）")
    check_in_date: Mapped[date] = mapped_column(Date, nullable=False, comment="签到日期")
    open_day: Mapped[Optional[date]] = mapped_column(Date, nullable=True, comment="未签退时的签到日期，签退后为空")
    check_out_time: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, comment="签退时间，空表示在岗")
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment="纬度")
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment="经度")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now, comment="创建时间（UTC）")

    assignment: Mapped["VolunteerAssignment"] = relationship("VolunteerAssignment", back_populates="attendances")

    __table_args__ = (
        UniqueConstraint("assignment_id", "open_day", name="uq_attendance_open_per_day"),
        CheckConstraint("latitude IS NULL OR (latitude >= -90 AND latitude <= 90)", name="ck_attendance_latitude"),
        CheckConstraint("longitude IS NULL OR (longitude >= -180 AND longitude <= 180)", name="ck_attendance_longitude"),
        Index("idx_attendance_assignment_date", "assignment_id", "check_in_date"),
        Index("idx_attendance_check_in_date", "check_in_date"),
    )

    @property
    def is_open(self) -> bool:
        return self.check_out_time is None

    def __repr__(self):
        return f"<Attendance(id={self.id}, assignment_id={self.assignment_id}, open={self.is_open})>"
