import os
import sys
import tempfile
from datetime import datetime

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# 测试环境变量需在导入项目模块前设置
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_DIR", tempfile.gettempdir())
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("EVENT_TIMEZONE", "Asia/Kolkata")

# 确保项目根路径在 sys.path 中
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from db.base import Base
from db.databases import enable_sqlite_savepoints, get_db
from main import app as main_app
from models.database import Faculty, Volunteer, Event, Committee, VolunteerAssignment, UserRole
from services.auth_dependencies import auth_service
from services.auth_service import AuthenticatedUser
from utils.password_utils import password_utils
from utils.time_utils import local_now

ADMIN_PASSWORD = "AdminPass1!"
FACULTY_PASSWORD = "FacultyPass1!"
VOLUNTEER_PASSWORD = "VolunteerPass1!"


# ------------------------- 数据库 -------------------------
@pytest.fixture(scope="function")
def engine():
    """每个用例独立的内存SQLite数据库"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(engine):
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


# ------------------------- 应用与客户端 -------------------------
@pytest.fixture(scope="function")
def app(db_session) -> FastAPI:
    # 路由与用例共用同一会话，避免内存库跨连接不可见
    def _override_get_db():
        yield db_session

    main_app.dependency_overrides[get_db] = _override_get_db
    yield main_app
    main_app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def client(app: FastAPI):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# ------------------------- 种子数据 -------------------------
@pytest.fixture(scope="function")
def seed_admin(db_session):
    admin = Faculty(
        name="Admin",
        email="admin@example.com",
        password_hash=password_utils.hash_password(ADMIN_PASSWORD),
        role=UserRole.ADMIN.value,
    )
    db_session.add(admin)
    db_session.commit()
    db_session.refresh(admin)
    return admin


@pytest.fixture(scope="function")
def seed_faculty(db_session):
    faculty = Faculty(
        name="Dr. Rao",
        email="rao@example.com",
        department="Physics",
        password_hash=password_utils.hash_password(FACULTY_PASSWORD),
        role=UserRole.FACULTY.value,
    )
    db_session.add(faculty)
    db_session.commit()
    db_session.refresh(faculty)
    return faculty


@pytest.fixture(scope="function")
def seed_event(db_session):
    event = Event(name="Annual Fest", venue="Main Ground")
    db_session.add(event)
    db_session.commit()
    db_session.refresh(event)
    return event


@pytest.fixture(scope="function")
def seed_committee(db_session, seed_event):
    committee = Committee(event_id=seed_event.id, name="Hospitality")
    db_session.add(committee)
    db_session.commit()
    db_session.refresh(committee)
    return committee


@pytest.fixture(scope="function")
def seed_volunteer(db_session):
    volunteer = Volunteer(
        name="Asha",
        email="asha@example.com",
        college_id="CS001",
        dept="CSE",
        password_hash=password_utils.hash_password(VOLUNTEER_PASSWORD),
        role=UserRole.VOLUNTEER.value,
    )
    db_session.add(volunteer)
    db_session.commit()
    db_session.refresh(volunteer)
    return volunteer


def make_assignment(db_session, event, committee, volunteer, shift="Morning", start_time=None):
    """创建排班，开始时间默认今天上午9点（活动时区）"""
    if start_time is None:
        start_time = local_now().replace(hour=9, minute=0, second=0)
    assignment = VolunteerAssignment(
        event_id=event.id,
        committee_id=committee.id,
        volunteer_id=volunteer.id,
        role="volunteer",
        status="assigned",
        shift=shift,
        start_time=start_time,
    )
    db_session.add(assignment)
    db_session.commit()
    db_session.refresh(assignment)
    return assignment


def make_volunteer(db_session, name, email=None, college_id=None):
    volunteer = Volunteer(name=name, email=email, college_id=college_id, role=UserRole.VOLUNTEER.value)
    db_session.add(volunteer)
    db_session.commit()
    db_session.refresh(volunteer)
    return volunteer


@pytest.fixture(scope="function")
def seed_assignment(db_session, seed_event, seed_committee, seed_volunteer):
    return make_assignment(db_session, seed_event, seed_committee, seed_volunteer)


# ------------------------- 认证头 -------------------------
def bearer_for(user_id: int, role: str, email: str = None) -> dict:
    access_token, _ = auth_service.generate_tokens(AuthenticatedUser(id=user_id, role=role, email=email))
    return {"Authorization": f"Bearer {access_token}"}


@pytest.fixture(scope="function")
def admin_headers(seed_admin):
    return bearer_for(seed_admin.id, UserRole.ADMIN.value, seed_admin.email)


@pytest.fixture(scope="function")
def faculty_headers(seed_faculty):
    return bearer_for(seed_faculty.id, UserRole.FACULTY.value, seed_faculty.email)


@pytest.fixture(scope="function")
def volunteer_headers(seed_volunteer):
    return bearer_for(seed_volunteer.id, UserRole.VOLUNTEER.value, seed_volunteer.email)


def today_at(hour: int, minute: int = 0) -> datetime:
    return local_now().replace(hour=hour, minute=minute, second=0)
