# -*- coding: utf-8 -*-
"""
排班模块 - Pydantic数据模型定义
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class AssignmentUpsert(BaseModel):
    """创建排班；同一 (活动, 委员会, 志愿者) 已存在时整体覆盖"""
    event_id: int = Field(..., gt=0, description="活动ID")
    committee_id: int = Field(..., gt=0, description="委员会ID")
    volunteer_id: int = Field(..., gt=0, description="志愿者ID")
    role: Optional[str] = Field(None, description="volunteer/lead/support，默认 volunteer")
    status: Optional[str] = Field(None, description="assigned/standby/cancelled，默认 assigned")
    reporting_time: Optional[datetime] = Field(None, description="报到时间")
    shift: Optional[str] = Field(None, max_length=100, description="班次")
    start_time: Optional[datetime] = Field(None, description="开始时间")
    end_time: Optional[datetime] = Field(None, description="结束时间")
    notes: Optional[str] = Field(None, description="备注")


class AssignmentUpdate(BaseModel):
    """部分更新排班"""
    role: Optional[str] = None
    status: Optional[str] = None
    reporting_time: Optional[datetime] = None
    shift: Optional[str] = Field(None, max_length=100)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    notes: Optional[str] = None


class AssignmentResponse(BaseModel):
    """排班响应模型（附带志愿者、委员会、活动名称）"""
    id: int
    event_id: int
    committee_id: int
    volunteer_id: int
    role: str
    status: str
    reporting_time: Optional[datetime] = None
    shift: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    volunteer_name: Optional[str] = None
    volunteer_email: Optional[str] = None
    volunteer_college_id: Optional[str] = None
    committee_name: Optional[str] = None
    event_name: Optional[str] = None


class MyAssignmentResponse(AssignmentResponse):
    active_attendance_id: Optional[int] = None
    is_checked_in_today: bool = False
