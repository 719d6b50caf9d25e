# 标准库
from dataclasses import dataclass
from typing import Optional, Tuple

# 第三方库
from sqlalchemy import func
from sqlalchemy.orm import Session
from loguru import logger

# 自定义模块
from models.database import Faculty, Volunteer, UserRole
from .exceptions import IdentityConflictError


def normalize_email(email: Optional[str]) -> Optional[str]:
    """邮箱统一去空白并转小写，空串视为未提供"""
    if email is None:
        return None
    email = email.strip().lower()
    return email or None


def normalize_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass
class IdentityResolution:
    """身份解析结果：volunteer 为空表示需要新建"""
    volunteer: Optional[Volunteer]
    matched_by: Optional[str] = None

    @property
    def is_new(self) -> bool:
        return self.volunteer is None


class IdentityService(object):
    """身份解析与唯一性校验

    志愿者与教职工共享同一邮箱命名空间；学号仅在志愿者内唯一。
    导入、管理员创建、自助注册、教职工注册都通过这里做唯一性检查。
    方法只做 flush，不提交事务，事务边界由调用方决定。
    """

    async def find_volunteer_by_email(self, db: Session, email: Optional[str]) -> Optional[Volunteer]:
        email = normalize_email(email)
        if not email:
            return None
        return db.query(Volunteer).filter(func.lower(Volunteer.email) == email).first()

    async def find_volunteer_by_college_id(self, db: Session, college_id: Optional[str]) -> Optional[Volunteer]:
        college_id = normalize_text(college_id)
        if not college_id:
            return None
        return db.query(Volunteer).filter(Volunteer.college_id == college_id).first()

    async def find_faculty_by_email(self, db: Session, email: Optional[str]) -> Optional[Faculty]:
        email = normalize_email(email)
        if not email:
            return None
        return db.query(Faculty).filter(func.lower(Faculty.email) == email).first()

    async def email_owner(self,
                          db: Session,
                          email: Optional[str],
                          exclude_volunteer_id: Optional[int] = None,
                          exclude_faculty_id: Optional[int] = None) -> Optional[str]:
        """返回占用该邮箱的身份类型（faculty/volunteer），未被占用返回 None"""
        faculty = await self.find_faculty_by_email(db, email)
        if faculty and faculty.id != exclude_faculty_id:
            return UserRole.FACULTY.value
        volunteer = await self.find_volunteer_by_email(db, email)
        if volunteer and volunteer.id != exclude_volunteer_id:
            return UserRole.VOLUNTEER.value
        return None

    async def ensure_email_available(self,
                                     db: Session,
                                     email: Optional[str],
                                     exclude_volunteer_id: Optional[int] = None,
                                     exclude_faculty_id: Optional[int] = None) -> None:
        """邮箱唯一性检查（志愿者+教职工），冲突时抛出 IdentityConflictError"""
        owner = await self.email_owner(db, email, exclude_volunteer_id, exclude_faculty_id)
        if owner == UserRole.FACULTY.value:
            raise IdentityConflictError(f"邮箱 {normalize_email(email)} 已被教职工账号使用")
        if owner == UserRole.VOLUNTEER.value:
            raise IdentityConflictError(f"邮箱 {normalize_email(email)} 已被志愿者使用")

    async def ensure_college_id_available(self,
                                          db: Session,
                                          college_id: Optional[str],
                                          exclude_volunteer_id: Optional[int] = None) -> None:
        existing = await self.find_volunteer_by_college_id(db, college_id)
        if existing and existing.id != exclude_volunteer_id:
            raise IdentityConflictError(f"学号 {normalize_text(college_id)} 已被其他志愿者使用")

    async def resolve_volunteer(self,
                                db: Session,
                                name: str,
                                email: Optional[str] = None,
                                college_id: Optional[str] = None) -> IdentityResolution:
        """解析姓名/邮箱/学号对应的志愿者（只读）

        顺序：邮箱（不区分大小写）→ 学号 → 视为新志愿者。
        新志愿者的邮箱若属于教职工，抛出 IdentityConflictError。
        """
        volunteer = await self.find_volunteer_by_email(db, email)
        if volunteer:
            return IdentityResolution(volunteer, matched_by="email")

        volunteer = await self.find_volunteer_by_college_id(db, college_id)
        if volunteer:
            return IdentityResolution(volunteer, matched_by="college_id")

        if await self.find_faculty_by_email(db, email):
            logger.warning(f"身份解析冲突：邮箱属于教职工 email={normalize_email(email)} name={name}")
            raise IdentityConflictError(f"邮箱 {normalize_email(email)} 已被教职工账号使用")
        return IdentityResolution(None)

    async def create_volunteer(self,
                               db: Session,
                               name: str,
                               email: Optional[str] = None,
                               phone: Optional[str] = None,
                               dept: Optional[str] = None,
                               college_id: Optional[str] = None,
                               password_hash: Optional[str] = None) -> Volunteer:
        """新建志愿者（唯一性检查后 flush，不提交）"""
        await self.ensure_email_available(db, email)
        await self.ensure_college_id_available(db, college_id)
        volunteer = Volunteer(
            name=name.strip(),
            email=normalize_email(email),
            phone=normalize_text(phone),
            dept=normalize_text(dept),
            college_id=normalize_text(college_id),
            password_hash=password_hash,
            role=UserRole.VOLUNTEER.value,
        )
        db.add(volunteer)
        db.flush()
        return volunteer

    async def resolve_or_create(self,
                                db: Session,
                                name: str,
                                email: Optional[str] = None,
                                college_id: Optional[str] = None,
                                phone: Optional[str] = None,
                                dept: Optional[str] = None) -> Tuple[Volunteer, bool]:
        """解析身份，未命中时新建；已有志愿者的字段保持不变

        Returns:
            (志愿者, 是否新建)
        """
        resolution = await self.resolve_volunteer(db, name, email=email, college_id=college_id)
        if not resolution.is_new:
            return resolution.volunteer, False
        volunteer = await self.create_volunteer(
            db, name, email=email, phone=phone, dept=dept, college_id=college_id
        )
        return volunteer, True
