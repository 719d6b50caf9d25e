# -*- coding: utf-8 -*-
import os
from urllib.parse import quote_plus
from typing import Generator, Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from dotenv import load_dotenv

# 加载环境变量
load_dotenv()


class DatabaseConfig:
    """数据库配置类，负责解析环境变量并生成连接URL

    优先使用 DATABASE_URL；未配置时按 MYSQL_* 拼接 pymysql 连接串。
    """

    def __init__(self):
        self.database_url = os.getenv("DATABASE_URL", "").strip()
        self.mysql_host = os.getenv("MYSQL_HOST", "127.0.0.1")
        self.mysql_port = os.getenv("MYSQL_PORT", "3306")
        self.mysql_user = os.getenv("MYSQL_USER", "seva")
        self.db_password_raw = os.getenv("MYSQL_PASSWORD", "")
        self.mysql_database = os.getenv("MYSQL_DATABASE", "seva_attendance")
        self.echo = os.getenv("DB_ECHO", "false").lower() == "true"

        # 对密码中的特殊字符进行URL编码（如#、@等）
        self.mysql_password = quote_plus(self.db_password_raw)

        if self.database_url:
            self.sync_url = self.database_url
        else:
            self.sync_url = f"mysql+pymysql://{self.mysql_user}:{self.mysql_password}@{self.mysql_host}:{self.mysql_port}/{self.mysql_database}"

    @property
    def is_sqlite(self) -> bool:
        return self.sync_url.startswith("sqlite")


def enable_sqlite_savepoints(engine: Engine) -> None:
    """让 pysqlite 由 SQLAlchemy 控制事务边界，使 SAVEPOINT（begin_nested）可用

    pysqlite 默认延迟发出 BEGIN，会导致 SAVEPOINT 成为最外层事务，
    此处关闭驱动自身的事务管理，改为在 begin 事件中显式发出 BEGIN。
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


class DatabaseSessionManager:
    """数据库会话管理器，封装引擎与会话创建逻辑"""

    def __init__(self, config: DatabaseConfig):
        self.config = config

        engine_kwargs = {"echo": self.config.echo, "pool_pre_ping": True}
        if self.config.is_sqlite:
            engine_kwargs["connect_args"] = {"check_same_thread": False}
        else:
            engine_kwargs.update(pool_size=30, max_overflow=20, pool_recycle=3600)

        self.sync_engine = create_engine(self.config.sync_url, **engine_kwargs)
        if self.config.is_sqlite:
            enable_sqlite_savepoints(self.sync_engine)

        self.sync_session_factory = sessionmaker(
            bind=self.sync_engine,
            autocommit=False,
            autoflush=False
        )

    # ------------------------------ 会话管理 ------------------------------
    def get_sync_session(self) -> Generator[Session, None, None]:
        """同步会话依赖注入生成器"""
        session = self.sync_session_factory()
        try:
            yield session
        finally:
            session.close()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """安全的会话上下文管理器，自动处理提交/回滚/关闭"""
        session = self.sync_session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


# 单例实例化（项目中全局使用一个管理器）
db_config = DatabaseConfig()
db_manager = DatabaseSessionManager(db_config)

# 对外暴露的依赖注入函数（与FastAPI路由配合使用）
get_db = db_manager.get_sync_session
