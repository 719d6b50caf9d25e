# -*- coding: utf-8 -*-
"""
认证模块 - Pydantic数据模型定义
"""
from typing import Optional, Literal
from pydantic import BaseModel, EmailStr, Field


class LoginRequest(BaseModel):
    """登录请求模型（教职工与志愿者共用）"""
    email: EmailStr = Field(..., description="邮箱")
    password: str = Field(..., min_length=1, description="密码")


class VolunteerRegister(BaseModel):
    """志愿者自助注册请求模型"""
    name: str = Field(..., min_length=1, max_length=100, description="姓名")
    email: EmailStr = Field(..., description="邮箱")
    password: str = Field(..., min_length=8, description="密码，至少8位")
    phone: Optional[str] = Field(None, max_length=20, description="手机号码")
    dept: Optional[str] = Field(None, max_length=200, description="院系")
    college_id: Optional[str] = Field(None, max_length=50, description="学号")


class FacultyRegister(BaseModel):
    """教职工注册请求模型（仅管理员）"""
    name: str = Field(..., min_length=1, max_length=100, description="姓名")
    email: EmailStr = Field(..., description="邮箱")
    password: str = Field(..., min_length=8, description="密码，至少8位")
    phone: Optional[str] = Field(None, max_length=20, description="手机号码")
    department: Optional[str] = Field(None, max_length=200, description="所属部门")
    role: Literal["admin", "faculty"] = Field("faculty", description="角色")


class FacultyResponse(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    department: Optional[str] = None
    role: str

    class Config:
        from_attributes = True


class SetPasswordRequest(BaseModel):
    """志愿者设置/修改密码"""
    old_password: Optional[str] = Field(None, description="旧密码，已设置密码时必填")
    new_password: str = Field(..., min_length=8, description="新密码，至少8位")
