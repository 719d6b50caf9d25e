# -*- coding: utf-8 -*-
"""
志愿者模块 - Pydantic数据模型定义
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field


class VolunteerBase(BaseModel):
    """志愿者基础模型"""
    name: str = Field(..., min_length=1, max_length=100, description="姓名")
    email: Optional[EmailStr] = Field(None, description="邮箱")
    phone: Optional[str] = Field(None, max_length=20, description="手机号码")
    dept: Optional[str] = Field(None, max_length=200, description="院系")
    college_id: Optional[str] = Field(None, max_length=50, description="学号")


class VolunteerCreate(VolunteerBase):
    """管理员创建志愿者"""
    password: Optional[str] = Field(None, min_length=8, description="初始密码，可不填")


class VolunteerUpdate(BaseModel):
    """更新志愿者（仅更新提供的字段）"""
    name: Optional[str] = Field(None, min_length=1, max_length=100, description="姓名")
    email: Optional[EmailStr] = Field(None, description="邮箱")
    phone: Optional[str] = Field(None, max_length=20, description="手机号码")
    dept: Optional[str] = Field(None, max_length=200, description="院系")
    college_id: Optional[str] = Field(None, max_length=50, description="学号")


class VolunteerResponse(BaseModel):
    """志愿者响应模型"""
    id: int = Field(..., description="志愿者ID")
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    dept: Optional[str] = None
    college_id: Optional[str] = None
    role: str
    has_password: bool = Field(False, description="是否已设置密码")
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
