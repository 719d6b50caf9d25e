# -*- coding: utf-8 -*-
"""
活动与委员会 - Pydantic数据模型定义
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class EventCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200, description="活动名称")
    venue: Optional[str] = Field(None, max_length=255, description="场地")
    tz: str = Field("Asia/Kolkata", max_length=64, description="时区")
    starts_at: Optional[datetime] = Field(None, description="开始时间")
    ends_at: Optional[datetime] = Field(None, description="结束时间")


class EventResponse(BaseModel):
    id: int
    name: str
    venue: Optional[str] = None
    tz: str
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CommitteeCreate(BaseModel):
    event_id: int = Field(..., gt=0, description="所属活动ID")
    name: str = Field(..., min_length=1, max_length=200, description="委员会名称")
    description: Optional[str] = Field(None, description="描述")


class CommitteeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200, description="委员会名称")
    description: Optional[str] = Field(None, description="描述")


class CommitteeResponse(BaseModel):
    id: int
    event_id: int
    name: str
    description: Optional[str] = None
    event_name: Optional[str] = None
    created_at: Optional[datetime] = None
