# -*- coding: utf-8 -*-
"""
排班/出勤查询的公共过滤与分页

所有条件都以 SQLAlchemy 表达式构建，参数绑定由驱动完成，不拼接 SQL 字符串。
"""
# 标准库
from dataclasses import dataclass, replace
from datetime import date
from typing import List, Optional

# 第三方库
from sqlalchemy import Select, and_
from sqlalchemy.sql.elements import ColumnElement

# 自定义模块
from models.database import Volunteer, VolunteerAssignment
from utils.time_utils import day_bounds

DEFAULT_LIMIT = 100
MAX_LIMIT = 500


def clamp_limit(limit: Optional[int]) -> int:
    if limit is None:
        return DEFAULT_LIMIT
    return max(1, min(int(limit), MAX_LIMIT))


def clamp_offset(offset: Optional[int]) -> int:
    if offset is None:
        return 0
    return max(0, int(offset))


def on_day(column, day: date) -> ColumnElement[bool]:
    """时间列落在某一天内"""
    start, end = day_bounds(day)
    return and_(column >= start, column < end)


def date_range(column, start_date: Optional[date] = None, end_date: Optional[date] = None) -> List[ColumnElement[bool]]:
    """时间列落在 [start_date, end_date] 闭区间（按天）"""
    conditions = []
    if start_date:
        conditions.append(column >= day_bounds(start_date)[0])
    if end_date:
        conditions.append(column < day_bounds(end_date)[1])
    return conditions


@dataclass
class ShiftScope:
    """排班范围过滤 + 分页

    event/committee/volunteer 精确匹配，shift 为不区分大小写的子串匹配。
    paginate=False 时不加 LIMIT/OFFSET（用于 CSV 导出与批量签退）。
    """
    event_id: Optional[int] = None
    committee_id: Optional[int] = None
    volunteer_id: Optional[int] = None
    shift: Optional[str] = None
    limit: int = DEFAULT_LIMIT
    offset: int = 0
    paginate: bool = True

    def __post_init__(self):
        self.limit = clamp_limit(self.limit)
        self.offset = clamp_offset(self.offset)
        if self.shift is not None:
            self.shift = self.shift.strip() or None

    def conditions(self) -> List[ColumnElement[bool]]:
        conditions = []
        if self.event_id is not None:
            conditions.append(VolunteerAssignment.event_id == self.event_id)
        if self.committee_id is not None:
            conditions.append(VolunteerAssignment.committee_id == self.committee_id)
        if self.volunteer_id is not None:
            conditions.append(VolunteerAssignment.volunteer_id == self.volunteer_id)
        if self.shift:
            conditions.append(VolunteerAssignment.shift.icontains(self.shift, autoescape=True))
        return conditions

    def apply(self, stmt: Select) -> Select:
        """为已关联 VolunteerAssignment 的查询追加过滤条件"""
        conditions = self.conditions()
        if conditions:
            stmt = stmt.where(*conditions)
        return stmt

    def page(self, stmt: Select) -> Select:
        if not self.paginate:
            return stmt
        return stmt.limit(self.limit).offset(self.offset)

    def unpaged(self) -> "ShiftScope":
        return replace(self, paginate=False)


# 三个排班视图共用的稳定排序：活动 → 委员会 → 开始时间 → 志愿者姓名
ASSIGNMENT_ORDERING = (
    VolunteerAssignment.event_id,
    VolunteerAssignment.committee_id,
    VolunteerAssignment.start_time,
    Volunteer.name,
    VolunteerAssignment.id,
)
