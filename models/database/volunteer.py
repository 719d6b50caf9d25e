# -*- coding: utf-8 -*-
from typing import Optional, List, TYPE_CHECKING
from sqlalchemy import String, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

# 自定义库
from db.base import AuditedBase, IdType
from models.database.enums import UserRole

if TYPE_CHECKING:
    from models.database.assignment import VolunteerAssignment


class Volunteer(AuditedBase):
    """志愿者身份记录

    - email 如存在，则在志愿者+教职工范围内唯一
    - college_id 如存在，则在志愿者范围内唯一
    - 通过导入创建的志愿者可以没有密码，之后由本人注册认领
    """
    __tablename__ = "volunteers"

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True, comment="主键ID")
    name: Mapped[str] = mapped_column(String(100), nullable=False, comment="姓名")
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, unique=True, comment="邮箱（小写存储）")
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True, comment="手机号码")
    dept: Mapped[Optional[str]] = mapped_column(String(200), nullable=True, comment="院系")
    college_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, unique=True, comment="学号")
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, comment="密码哈希值，可为空")
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=UserRole.VOLUNTEER.value, comment="角色")

    assignments: Mapped[List["VolunteerAssignment"]] = relationship(
        "VolunteerAssignment", back_populates="volunteer",
        cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        Index("idx_volunteers_name", "name"),
    )

    @property
    def has_password(self) -> bool:
        return bool(self.password_hash)

    def __repr__(self):
        return f"<Volunteer(id={self.id}, name='{self.name}', email='{self.email}')>"
