# 标准库
import sys
import os
from pathlib import Path
from contextlib import asynccontextmanager

# 第三方库
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

load_dotenv()

# 自定义类
from db.base import Base
from db.databases import db_manager
from models.database import Faculty, UserRole
from services.identity_service import normalize_email
from utils.password_utils import password_utils
import router
from router.error_handlers import add_error_handlers


# 日志配置
LOG_DIR = Path(os.getenv("LOG_DIR", "."))
DEFAULT_FORMAT = '{time:YYYY-MM-DD HH:mm:ss.SSS} [{level}] - {name}:{function}:{line} - {message}'
handlers = [
    {'level': 'DEBUG', 'format': DEFAULT_FORMAT, 'sink': sys.stdout},
    {'level': 'INFO', 'format': DEFAULT_FORMAT, 'sink': str(LOG_DIR / 'seva-attendance-info.log'),
     'rotation': '10 MB', 'retention': 10},
    {'level': 'ERROR', 'format': DEFAULT_FORMAT, 'sink': str(LOG_DIR / 'seva-attendance-error.log'),
     'rotation': '10 MB', 'retention': 10},
]
logger.configure(handlers=handlers)


def bootstrap_admin() -> None:
    """尚无任何教职工账号时，按 BOOTSTRAP_ADMIN_* 创建首个管理员"""
    email = normalize_email(os.getenv("BOOTSTRAP_ADMIN_EMAIL"))
    password = os.getenv("BOOTSTRAP_ADMIN_PASSWORD", "")
    if not email or not password:
        return
    with db_manager.session_scope() as session:
        if session.query(Faculty).first() is not None:
            return
        session.add(Faculty(
            name=os.getenv("BOOTSTRAP_ADMIN_NAME", "Administrator"),
            email=email,
            password_hash=password_utils.hash_password(password),
            role=UserRole.ADMIN.value,
        ))
    logger.success(f"已创建初始管理员账号: {email}")


# Lifespan 事件处理器
@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理：启动和关闭事件"""
    # ===== 启动逻辑 =====
    logger.info("Seva Attendance API 正在启动...")
    Base.metadata.create_all(bind=db_manager.sync_engine)
    bootstrap_admin()
    logger.success("Seva Attendance API 启动完成")

    yield  # 应用运行期间

    # ===== 关闭逻辑 =====
    logger.info("Seva Attendance API 正在关闭...")
    db_manager.sync_engine.dispose()
    logger.info("Seva Attendance API 已关闭")


# 创建 FastAPI 应用，传入 lifespan
app = FastAPI(title="Seva Attendance API", version="1.0.0", lifespan=lifespan)


# 读取API配置（从环境变量）
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", 8000))

# CORS 配置
cors_origins_str = os.getenv("CORS_ORIGINS", "http://localhost:3000")
origins = [origin.strip() for origin in cors_origins_str.split(",") if origin.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_ssl_paths():
    """从.env读取并返回证书和密钥的路径（Path对象），若未配置或文件不存在则回退到HTTP模式"""
    cert_path_str = os.getenv("CERT_FILE_PATH", "")
    key_path_str = os.getenv("KEY_FILE_PATH", "")

    cert_path = Path(cert_path_str) if cert_path_str else None
    key_path = Path(key_path_str) if key_path_str else None

    if not cert_path or not key_path:
        logger.warning("未配置证书路径，服务将以HTTP模式启动")
        return None, None
    if not cert_path.exists() or not key_path.exists():
        logger.warning(f"证书或密钥文件不存在：{cert_path} 或 {key_path}，服务将以HTTP模式启动")
        return None, None

    return cert_path, key_path


# 异常处理
add_error_handlers(app)

# 路由
app.include_router(router.auth_manage)
app.include_router(router.volunteer_manage)
app.include_router(router.assignment_manage)
app.include_router(router.event_manage)
app.include_router(router.attendance_manage)
app.include_router(router.health_check)


# 启动入口
if __name__ == "__main__":
    import uvicorn
    full_cert_path, full_key_path = get_ssl_paths()
    if full_cert_path and full_key_path:
        logger.info(f"以HTTPS模式启动，证书: {full_cert_path}, 密钥: {full_key_path}")
        uvicorn.run(
            "main:app",
            host=API_HOST,
            port=API_PORT,
            ssl_certfile=str(full_cert_path),
            ssl_keyfile=str(full_key_path)
        )
    else:
        logger.info("未检测到有效证书，使用HTTP模式启动")
        uvicorn.run(
            "main:app",
            host=API_HOST,
            port=API_PORT
        )
