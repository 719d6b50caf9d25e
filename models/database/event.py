# -*- coding: utf-8 -*-
from datetime import datetime
from typing import Optional, List, TYPE_CHECKING
from sqlalchemy import String, Text, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

# 自定义库
from db.base import AuditedBase, IdType

if TYPE_CHECKING:
    from models.database.assignment import VolunteerAssignment


class Event(AuditedBase):
    """活动"""
    __tablename__ = "events"

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True, comment="主键ID")
    name: Mapped[str] = mapped_column(String(200), nullable=False, comment="活动名称")
    venue: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, comment="场地")
    tz: Mapped[str] = mapped_column(String(64), nullable=False, default="Asia/Kolkata", comment="活动时区")
    starts_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, comment="开始时间")
    ends_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, comment="结束时间")

    committees: Mapped[List["Committee"]] = relationship(
        "Committee", back_populates="event",
        cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self):
        return f"<Event(id={self.id}, name='{self.name}')>"


class Committee(AuditedBase):
    """委员会（活动下的工作组），同一活动内名称唯一"""
    __tablename__ = "committees"

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True, comment="主键ID")
    event_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, comment="所属活动ID"
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False, comment="委员会名称")
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="描述")

    event: Mapped["Event"] = relationship("Event", back_populates="committees")
    assignments: Mapped[List["VolunteerAssignment"]] = relationship(
        "VolunteerAssignment", back_populates="committee",
        cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        UniqueConstraint("event_id", "name", name="uq_committees_event_name"),
    )

    def __repr__(self):
        return f"<Committee(id={self.id}, event_id={self.event_id}, name='{self.name}')>"
