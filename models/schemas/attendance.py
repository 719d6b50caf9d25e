# -*- coding: utf-8 -*-
"""
出勤模块 - Pydantic数据模型定义
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class CheckInRequest(BaseModel):
    """签到请求；time 缺省为服务器当前时间"""
    assignment_id: int = Field(..., description="排班ID")
    lat: Optional[float] = Field(None, ge=-90, le=90, description="纬度")
    lng: Optional[float] = Field(None, ge=-180, le=180, description="经度")
    time: Optional[str] = Field(None, description="ISO-8601 签到时间")


class CheckOutRequest(BaseModel):
    """签退请求；time 缺省为服务器当前时间"""
    attendance_id: int = Field(..., description="出勤记录ID")
    time: Optional[str] = Field(None, description="ISO-8601 签退时间")


class CloseoutResponse(BaseModel):
    message: str
    closed_count: int


class PendingShiftRow(BaseModel):
    """当天应到未签到的排班"""
    assignment_id: int
    event_id: int
    event_name: str
    committee_id: int
    committee_name: str
    volunteer_id: int
    volunteer_name: str
    volunteer_dept: Optional[str] = None
    volunteer_college_id: Optional[str] = None
    assignment_role: str
    assignment_status: str
    reporting_time: Optional[datetime] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    shift: Optional[str] = None
    notes: Optional[str] = None


class ActiveCheckinRow(BaseModel):
    """当前在岗（未签退）的出勤记录"""
    attendance_id: int
    assignment_id: int
    check_in_time: datetime
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    shift: Optional[str] = None
    start_time: Optional[datetime] = None
    volunteer_id: int
    volunteer_name: str
    volunteer_college_id: Optional[str] = None
    committee_id: int
    committee_name: str
    event_id: int
    event_name: str


class AssignmentStatusRow(BaseModel):
    """排班及其在参考日期的在岗状态"""
    assignment_id: int
    event_id: int
    event_name: str
    committee_id: int
    committee_name: str
    volunteer_id: int
    volunteer_name: str
    volunteer_email: Optional[str] = None
    volunteer_college_id: Optional[str] = None
    assignment_role: str
    assignment_status: str
    reporting_time: Optional[datetime] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    shift: Optional[str] = None
    notes: Optional[str] = None
    active_attendance_id: Optional[int] = None
    is_checked_in: bool = False


class AttendanceRecordRow(BaseModel):
    """出勤记录列表行"""
    attendance_id: int
    assignment_id: int
    event_id: int
    event_name: str
    committee_id: int
    committee_name: str
    volunteer_id: int
    volunteer_name: str
    volunteer_college_id: Optional[str] = None
    shift: Optional[str] = None
    check_in_time: datetime
    check_out_time: Optional[datetime] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
