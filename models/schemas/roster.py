# -*- coding: utf-8 -*-
"""
名册导入 - Pydantic数据模型定义
"""
from typing import List
from pydantic import BaseModel, Field


class RowError(BaseModel):
    line: int = Field(..., description="CSV 行号（表头为第1行）")
    error: str = Field(..., description="错误原因")


class ImportSummary(BaseModel):
    created_volunteers: int = 0
    created_assignments: int = 0
    updated_assignments: int = 0
    errors: List[RowError] = Field(default_factory=list)
