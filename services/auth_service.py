# 标准库
import os
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any

# 第三方库
from jose import jwt, JWTError
from loguru import logger
from sqlalchemy.orm import Session

# 自定义模块
from models.database import Faculty, Volunteer, UserRole
from schemas import VolunteerRegister, FacultyRegister
from utils.password_utils import password_utils
from .exceptions import ServiceError, ValidationError, IdentityConflictError
from .identity_service import IdentityService, normalize_email, normalize_text


@dataclass
class AuthenticatedUser:
    """令牌对应的身份：id 在 role 对应的身份表中"""
    id: int
    role: str
    email: Optional[str] = None
    name: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value


def _identity_from_faculty(faculty: Faculty) -> AuthenticatedUser:
    return AuthenticatedUser(id=faculty.id, role=faculty.role, email=faculty.email, name=faculty.name)


def _identity_from_volunteer(volunteer: Volunteer) -> AuthenticatedUser:
    return AuthenticatedUser(id=volunteer.id, role=UserRole.VOLUNTEER.value, email=volunteer.email, name=volunteer.name)


def _check_password(password: str) -> None:
    try:
        password_utils.check_strength(password)
    except ValueError as ve:
        raise ValidationError(str(ve))


class AuthService(object):
    """JWT认证服务

    功能：
    - 登录：先查教职工，再查志愿者（邮箱不区分大小写）
    - 生成、验证、刷新、撤销令牌（黑名单机制）
    - 志愿者自助注册（可认领导入时创建、尚无密码的账号）与教职工注册
    - 从环境变量读取配置，记录安全日志
    """

    # 默认配置常量
    DEFAULT_JWT_SECRET: str = "change-me-seva-attendance-secret"
    DEFAULT_JWT_ALGORITHM: str = "HS256"
    DEFAULT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    DEFAULT_REFRESH_TOKEN_EXPIRE_MINUTES: int = 43200  # 30天
    DEFAULT_JWT_ISSUER: str = "seva-attendance"
    DEFAULT_JWT_AUDIENCE: str = "seva-attendance-clients"
    # 实例属性
    JWT_SECRET: str
    JWT_ALGORITHM: str
    ACCESS_TOKEN_EXPIRE_MINUTES: int
    REFRESH_TOKEN_EXPIRE_MINUTES: int
    JWT_ISSUER: str
    JWT_AUDIENCE: str
    token_blacklist: set

    def __init__(self, identity_service: Optional[IdentityService] = None) -> None:
        # 环境变量配置
        self.JWT_SECRET = os.getenv("JWT_SECRET", self.DEFAULT_JWT_SECRET)
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", self.DEFAULT_JWT_ALGORITHM)
        self.ACCESS_TOKEN_EXPIRE_MINUTES = int(
            os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(self.DEFAULT_ACCESS_TOKEN_EXPIRE_MINUTES)))
        self.REFRESH_TOKEN_EXPIRE_MINUTES = int(
            os.getenv("REFRESH_TOKEN_EXPIRE_MINUTES", str(self.DEFAULT_REFRESH_TOKEN_EXPIRE_MINUTES)))
        self.JWT_ISSUER = os.getenv("JWT_ISSUER", self.DEFAULT_JWT_ISSUER)
        self.JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", self.DEFAULT_JWT_AUDIENCE)

        # 强随机密钥保护：若配置为空，则生成一次性密钥（生产环境务必配置JWT_SECRET）
        if not self.JWT_SECRET:
            self.JWT_SECRET = uuid.uuid4().hex + uuid.uuid4().hex
            logger.warning("未配置JWT_SECRET，已生成临时密钥。请在生产环境设置JWT_SECRET以确保安全与可持续认证！")

        # 简易黑名单存储（内存），存储被撤销的jti
        self.token_blacklist = set()
        self.identity_service = identity_service or IdentityService()

    # --------------------------- 用户认证 ---------------------------

    async def authenticate(self, db: Session, email: str, password: str) -> Optional[AuthenticatedUser]:
        """教职工优先，其次志愿者；密码错误或未设置密码返回 None"""
        faculty = await self.identity_service.find_faculty_by_email(db, email)
        if faculty:
            if password_utils.verify_password(password, faculty.password_hash):
                logger.info(f"认证成功 faculty_id={faculty.id} role={faculty.role}")
                return _identity_from_faculty(faculty)
            logger.warning(f"认证失败：密码错误 faculty_id={faculty.id}")
            return None

        volunteer = await self.identity_service.find_volunteer_by_email(db, email)
        if not volunteer:
            logger.warning(f"认证失败：账号不存在 email={normalize_email(email)}")
            return None
        if not volunteer.password_hash:
            logger.warning(f"认证失败：志愿者尚未设置密码 volunteer_id={volunteer.id}")
            return None
        if not password_utils.verify_password(password, volunteer.password_hash):
            logger.warning(f"认证失败：密码错误 volunteer_id={volunteer.id}")
            return None
        logger.info(f"认证成功 volunteer_id={volunteer.id}")
        return _identity_from_volunteer(volunteer)

    async def load_identity(self, db: Session, user_id: int, role: str) -> Optional[AuthenticatedUser]:
        """按令牌中的 sub/role 重新加载身份，账号已删除返回 None"""
        if role == UserRole.VOLUNTEER.value:
            volunteer = db.get(Volunteer, user_id)
            return _identity_from_volunteer(volunteer) if volunteer else None
        faculty = db.get(Faculty, user_id)
        return _identity_from_faculty(faculty) if faculty else None

    # --------------------------- 令牌生成 ---------------------------
    def _build_claims(self,
                      user: AuthenticatedUser,
                      token_type: str,
                      expires_minutes: int) -> dict[str, Any]:
        """构建JWT声明"""
        now = datetime.now(timezone.utc)
        return {
            "sub": str(user.id),
            "email": user.email,
            "role": user.role,
            "type": token_type,
            "jti": uuid.uuid4().hex,
            "iat": int(now.timestamp()),
            "nbf": int(now.timestamp()),
            "exp": int((now + timedelta(minutes=expires_minutes)).timestamp()),
            "iss": self.JWT_ISSUER,
            "aud": self.JWT_AUDIENCE,
        }

    def generate_tokens(self, user: AuthenticatedUser) -> tuple[str, str]:
        """生成 access_token 与 refresh_token
        Returns:
            包含access_token和refresh_token的元组
        Raises:
            JWTError: JWT编码失败时抛出
        """
        try:
            access_payload = self._build_claims(
                user, token_type="access", expires_minutes=self.ACCESS_TOKEN_EXPIRE_MINUTES)
            refresh_payload = self._build_claims(
                user, token_type="refresh", expires_minutes=self.REFRESH_TOKEN_EXPIRE_MINUTES)
            access_token = jwt.encode(access_payload, self.JWT_SECRET, algorithm=self.JWT_ALGORITHM)
            refresh_token = jwt.encode(refresh_payload, self.JWT_SECRET, algorithm=self.JWT_ALGORITHM)
            logger.info(
                f"发放令牌：user_id={user.id} role={user.role} "
                f"jti_access={access_payload['jti']} jti_refresh={refresh_payload['jti']}")
            return access_token, refresh_token
        except JWTError as e:
            logger.error(f"JWT编码失败: {e}")
            raise

    # --------------------------- 令牌验证 ---------------------------
    def verify_token(self, token: str, expected_type: str = "access") -> Optional[Dict[str, Any]]:
        """验证令牌有效性与类型，并检查黑名单。返回payload或None。"""
        try:
            payload = jwt.decode(
                token,
                self.JWT_SECRET,
                algorithms=[self.JWT_ALGORITHM],
                audience=self.JWT_AUDIENCE,
                issuer=self.JWT_ISSUER,
            )
        except JWTError as e:
            logger.warning(f"令牌验证失败：{e}")
            return None

        if payload.get("type") != expected_type:
            logger.warning(f"令牌类型不匹配：期待{expected_type}，实际{payload.get('type')}")
            return None
        if payload.get("jti") in self.token_blacklist:
            logger.warning(f"令牌已被撤销（黑名单）：jti={payload.get('jti')}")
            return None
        return payload

    # --------------------------- 刷新与轮换 ---------------------------
    def refresh_access_token(self, refresh_token: str, user: AuthenticatedUser) -> Optional[tuple[str, str]]:
        """使用refresh_token刷新：旧refresh进入黑名单，签发新的access与refresh"""
        payload = self.verify_token(refresh_token, expected_type="refresh")
        if not payload:
            return None
        old_jti = payload.get("jti")
        self.token_blacklist.add(old_jti)
        logger.info(f"Refresh令牌轮换：撤销旧refresh jti={old_jti} user_id={user.id}")
        return self.generate_tokens(user)

    # --------------------------- 撤销令牌 ---------------------------
    def revoke_token(self, token: str) -> bool:
        """撤销令牌（加入黑名单）。返回是否成功。"""
        try:
            payload = jwt.decode(
                token,
                self.JWT_SECRET,
                algorithms=[self.JWT_ALGORITHM],
                audience=self.JWT_AUDIENCE,
                issuer=self.JWT_ISSUER,
            )
        except JWTError as e:
            logger.warning(f"撤销失败：令牌解析错误 {e}")
            return False
        jti = payload.get("jti")
        if not jti:
            logger.warning("撤销失败：令牌不含jti")
            return False
        self.token_blacklist.add(jti)
        logger.info(f"令牌撤销成功 jti={jti} type={payload.get('type')} user_id={payload.get('sub')}")
        return True

    # --------------------------- 便捷登录入口 ---------------------------
    async def login_and_issue(self, db: Session, email: str, password: str):
        """认证并签发令牌，失败返回 None

        Returns:
            (身份, access_token, refresh_token) 或 None
        """
        user = await self.authenticate(db, email, password)
        if not user:
            return None
        access_token, refresh_token = self.generate_tokens(user)
        return user, access_token, refresh_token

    # --------------------------- 注册 ---------------------------
    async def register_volunteer(self, db: Session, payload: VolunteerRegister) -> Volunteer:
        """志愿者自助注册

        - 邮箱属于教职工：冲突
        - 邮箱属于已设置密码的志愿者：冲突
        - 邮箱属于导入创建、尚无密码的志愿者：认领该账号，设置密码并补全空字段
        """
        try:
            _check_password(payload.password)
            email = normalize_email(payload.email)
            if await self.identity_service.find_faculty_by_email(db, email):
                raise IdentityConflictError("该邮箱已被教职工账号使用")

            volunteer = await self.identity_service.find_volunteer_by_email(db, email)
            password_hash = password_utils.hash_password(payload.password)
            if volunteer is not None:
                if volunteer.password_hash:
                    raise IdentityConflictError("该邮箱已注册")
                if payload.college_id and not volunteer.college_id:
                    await self.identity_service.ensure_college_id_available(
                        db, payload.college_id, exclude_volunteer_id=volunteer.id
                    )
                    volunteer.college_id = normalize_text(payload.college_id)
                volunteer.phone = volunteer.phone or normalize_text(payload.phone)
                volunteer.dept = volunteer.dept or normalize_text(payload.dept)
                volunteer.password_hash = password_hash
                logger.info(f"志愿者认领账号: volunteer_id={volunteer.id}")
            else:
                volunteer = await self.identity_service.create_volunteer(
                    db,
                    name=payload.name,
                    email=email,
                    phone=payload.phone,
                    dept=payload.dept,
                    college_id=payload.college_id,
                    password_hash=password_hash,
                )
                logger.info(f"志愿者注册成功: volunteer_id={volunteer.id}")
            db.commit()
            db.refresh(volunteer)
            return volunteer
        except ServiceError as se:
            logger.warning(f"志愿者注册被拒绝: {se.message}")
            db.rollback()
            raise
        except Exception as e:
            logger.error(f"志愿者注册失败: {e}")
            db.rollback()
            raise

    async def register_faculty(self, db: Session, payload: FacultyRegister) -> Faculty:
        """注册教职工/管理员，邮箱在志愿者+教职工范围内唯一"""
        try:
            _check_password(payload.password)
            email = normalize_email(payload.email)
            await self.identity_service.ensure_email_available(db, email)
            faculty = Faculty(
                name=payload.name.strip(),
                email=email,
                phone=normalize_text(payload.phone),
                department=normalize_text(payload.department),
                password_hash=password_utils.hash_password(payload.password),
                role=payload.role,
            )
            db.add(faculty)
            db.commit()
            db.refresh(faculty)
            logger.info(f"教职工注册成功: faculty_id={faculty.id} role={faculty.role}")
            return faculty
        except ServiceError as se:
            logger.warning(f"教职工注册被拒绝: {se.message}")
            db.rollback()
            raise
        except Exception as e:
            logger.error(f"教职工注册失败: {e}")
            db.rollback()
            raise
