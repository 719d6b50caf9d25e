# -*- coding: utf-8 -*-
from datetime import datetime, timezone
from sqlalchemy import BigInteger, DateTime, Integer
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# 主键类型：MySQL 使用 BIGINT，SQLite 仅 INTEGER PRIMARY KEY 支持自增
IdType = BigInteger().with_variant(Integer(), "sqlite")


def _utc_now() -> datetime:
    """返回当前 UTC 时间（naive，无 tzinfo），适配 MySQL DATETIME"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    """最简基类，所有模型都应继承此类（不包含任何字段）"""
    pass


class AuditedBase(Base):
    """带创建/更新时间的基类"""
    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime,  # MySQL DATETIME，无时区
        default=_utc_now,
        comment="创建时间（UTC）"
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=_utc_now,
        onupdate=_utc_now,
        comment="更新时间（UTC）"
    )
