# 第三方库
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger


def _describe(errors) -> str:
    """把 pydantic 错误列表压缩成一行：字段路径: 原因"""
    parts = []
    for error in errors:
        loc = ".".join(str(item) for item in error.get("loc", ()) if item != "body")
        parts.append(f"{loc}: {error.get('msg', 'invalid')}" if loc else error.get("msg", "invalid"))
    return "; ".join(parts) or "请求参数不合法"


def add_error_handlers(app: FastAPI):
    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        # 请求体/参数校验失败统一按 400 返回，与业务层 ValidationError 同一格式
        message = _describe(exc.errors())
        logger.warning(f"请求参数校验失败: {request.method} {request.url.path} {message}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": {"code": "validation_error", "message": message}},
        )
