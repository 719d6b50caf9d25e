# 标准库
from typing import NoReturn, Optional

# 第三方库
from fastapi import HTTPException, Query, Response, status
from loguru import logger

# 自定义模块
from services.exceptions import ServiceError
from services.query_filters import ShiftScope, DEFAULT_LIMIT


def resp(data=None, message="success", code=0):
    return {"code": code, "message": message, "data": data}


def raise_http(status_code: int, message: str, code: str) -> NoReturn:
    raise HTTPException(status_code=status_code, detail={"code": code, "message": message})


def raise_service_error(error: ServiceError) -> NoReturn:
    """业务异常 → HTTP 错误（状态码与 code 由异常类型决定）"""
    raise_http(error.status_code, error.message, error.code)


def raise_server_error(action: str, error: Exception) -> NoReturn:
    logger.error(f"{action}异常: {error}")
    raise_http(status.HTTP_500_INTERNAL_SERVER_ERROR, "服务器内部错误", "server_error")


def pagination(page: int, page_size: int, total: int) -> dict:
    total_pages = (total + page_size - 1) // page_size
    return {
        "page": page,
        "page_size": page_size,
        "total": total,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_prev": page > 1,
    }


def csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def shift_scope_params(
    event_id: Optional[int] = Query(None, description="活动ID"),
    committee_id: Optional[int] = Query(None, description="委员会ID"),
    volunteer_id: Optional[int] = Query(None, description="志愿者ID"),
    shift: Optional[str] = Query(None, description="班次（不区分大小写的子串匹配）"),
    limit: int = Query(DEFAULT_LIMIT, description="每页数量，范围 1-500"),
    offset: int = Query(0, description="偏移量"),
) -> ShiftScope:
    """排班/出勤列表共用的过滤与分页参数"""
    return ShiftScope(
        event_id=event_id,
        committee_id=committee_id,
        volunteer_id=volunteer_id,
        shift=shift,
        limit=limit,
        offset=offset,
    )
