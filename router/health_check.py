# 标准库
from typing import Dict, Any

# 第三方库
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlalchemy.orm import Session
from loguru import logger

# 自定义模块
from db.databases import get_db, db_config

# 创建路由器
router = APIRouter(prefix="/api/v1/health", tags=["健康检查"])


@router.get("/", summary="系统健康检查", description="检查数据库连接与应用状态")
async def system_health_check(db: Session = Depends(get_db)) -> Dict[str, Any]:
    """系统整体健康检查

    对存储执行 SELECT 1，数据库不可用时返回503。

    Returns:
        Dict[str, Any]: 系统健康状态信息
    """
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"系统健康检查失败: {e}")
        raise HTTPException(
            status_code=503,
            detail={"code": "database_unavailable", "message": f"数据库不可用: {e}"}
        )

    health_status = {
        "status": "healthy",
        "version": "1.0.0",
        "services": {
            "database": {
                "service": "sqlite" if db_config.is_sqlite else "mysql",
                "status": "healthy",
            },
            "application": {
                "service": "seva_attendance",
                "status": "healthy",
            }
        },
        "message": "所有服务运行正常",
    }
    logger.info(f"系统健康检查完成 - 状态: {health_status['status']}")
    return health_status


@router.get("/ping", summary="简单健康检查", description="最简单的健康检查端点")
async def ping() -> Dict[str, str]:
    """最基础的健康检查端点，用于快速验证API服务是否可用"""
    return {
        "status": "ok",
        "message": "Seva Attendance API is running",
        "service": "seva_attendance"
    }
