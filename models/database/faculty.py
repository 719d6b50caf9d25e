# -*- coding: utf-8 -*-
from typing import Optional
from sqlalchemy import String, Index
from sqlalchemy.orm import Mapped, mapped_column

# 自定义库
from db.base import AuditedBase, IdType
from models.database.enums import UserRole


class Faculty(AuditedBase):
    """教职工/管理员账号，与志愿者共享同一邮箱命名空间"""
    __tablename__ = "faculty"

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True, comment="主键ID")
    name: Mapped[str] = mapped_column(String(100), nullable=False, comment="姓名")
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, comment="邮箱（小写存储）")
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True, comment="手机号码")
    department: Mapped[Optional[str]] = mapped_column(String(200), nullable=True, comment="所属部门")
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False, comment="密码哈希值（bcrypt加密）")
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=UserRole.FACULTY.value,
        comment="角色：admin-管理员，faculty-教职工"
    )

    __table_args__ = (
        Index("idx_faculty_role", "role"),
    )

    def __repr__(self):
        return f"<Faculty(id={self.id}, email='{self.email}', role='{self.role}')>"
