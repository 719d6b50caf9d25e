# 标准库
from typing import Optional, List, Tuple

# 第三方库
from sqlalchemy import or_, func, select
from sqlalchemy.orm import Session
from loguru import logger

# 自定义模块
from models.database import Volunteer, VolunteerAssignment
from schemas import VolunteerCreate, VolunteerUpdate
from utils.password_utils import password_utils
from .exceptions import ServiceError, ValidationError, NotFoundError, AuthenticationError
from .identity_service import IdentityService, normalize_email, normalize_text


class VolunteerService(object):
    """志愿者业务逻辑层
    提供志愿者的增删改查与本人密码设置，唯一性检查统一交给 IdentityService。
    所有方法使用 async 定义以保持一致的异步接口风格，内部使用同步 Session 操作。
    """

    def __init__(self, identity_service: Optional[IdentityService] = None):
        self.identity_service = identity_service or IdentityService()

    async def create_volunteer(self, db: Session, payload: VolunteerCreate) -> Volunteer:
        """管理员创建志愿者（邮箱、学号唯一性检查，可选初始密码）"""
        try:
            password_hash = None
            if payload.password:
                try:
                    password_utils.check_strength(payload.password)
                except ValueError as ve:
                    raise ValidationError(str(ve))
                password_hash = password_utils.hash_password(payload.password)
            volunteer = await self.identity_service.create_volunteer(
                db,
                name=payload.name,
                email=payload.email,
                phone=payload.phone,
                dept=payload.dept,
                college_id=payload.college_id,
                password_hash=password_hash,
            )
            db.commit()
            db.refresh(volunteer)
            logger.info(f"成功创建志愿者: {volunteer.id} ({volunteer.email})")
            return volunteer
        except ServiceError as se:
            logger.warning(f"创建志愿者参数错误: {se.message}")
            db.rollback()
            raise
        except Exception as e:
            logger.error(f"创建志愿者失败: {e}")
            db.rollback()
            raise

    async def get_volunteer(self, db: Session, volunteer_id: int) -> Volunteer:
        volunteer = db.get(Volunteer, volunteer_id)
        if volunteer is None:
            raise NotFoundError(f"志愿者 {volunteer_id} 不存在")
        return volunteer

    async def get_volunteers(
        self,
        db: Session,
        page: int = 1,
        page_size: int = 20,
        keyword: Optional[str] = None,
        committee_id: Optional[int] = None,
    ) -> Tuple[List[Volunteer], int]:
        """获取志愿者列表（支持分页与筛选）
        返回 (items, total) 二元组
        """
        stmt = select(Volunteer)
        if keyword and keyword.strip():
            like = f"%{keyword.strip()}%"
            stmt = stmt.where(
                or_(
                    Volunteer.name.like(like),
                    Volunteer.email.like(like),
                    Volunteer.college_id.like(like),
                )
            )
        if committee_id:
            stmt = stmt.where(
                Volunteer.id.in_(
                    select(VolunteerAssignment.volunteer_id).where(VolunteerAssignment.committee_id == committee_id)
                )
            )

        total = db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()

        # 分页
        if page < 1:
            page = 1
        if page_size < 1:
            page_size = 20
        items = db.execute(
            stmt.order_by(Volunteer.name, Volunteer.id).offset((page - 1) * page_size).limit(page_size)
        ).scalars().all()
        logger.info(f"查询志愿者列表: 页码={page}, 页大小={page_size}, 总数={total}")
        return list(items), total

    async def update_volunteer(self, db: Session, volunteer_id: int, payload: VolunteerUpdate) -> Volunteer:
        """更新志愿者资料，邮箱与学号变更时重新做唯一性检查（排除自身）"""
        try:
            volunteer = await self.get_volunteer(db, volunteer_id)
            changes = payload.model_dump(exclude_unset=True)
            if not changes:
                raise ValidationError("没有需要更新的字段")

            if "email" in changes:
                email = normalize_email(changes["email"])
                if email:
                    await self.identity_service.ensure_email_available(db, email, exclude_volunteer_id=volunteer_id)
                volunteer.email = email
            if "college_id" in changes:
                college_id = normalize_text(changes["college_id"])
                if college_id:
                    await self.identity_service.ensure_college_id_available(
                        db, college_id, exclude_volunteer_id=volunteer_id
                    )
                volunteer.college_id = college_id
            if "name" in changes:
                if not normalize_text(changes["name"]):
                    raise ValidationError("姓名不能为空")
                volunteer.name = changes["name"].strip()
            for field in ("phone", "dept"):
                if field in changes:
                    setattr(volunteer, field, normalize_text(changes[field]))

            db.commit()
            db.refresh(volunteer)
            logger.info(f"成功更新志愿者: {volunteer_id} fields={list(changes)}")
            return volunteer
        except ServiceError as se:
            logger.warning(f"更新志愿者失败: {se.message}")
            db.rollback()
            raise
        except Exception as e:
            logger.error(f"更新志愿者异常: {e}")
            db.rollback()
            raise

    async def delete_volunteer(self, db: Session, volunteer_id: int) -> None:
        """删除志愿者，级联删除其排班与出勤记录"""
        try:
            volunteer = await self.get_volunteer(db, volunteer_id)
            db.delete(volunteer)
            db.commit()
            logger.info(f"志愿者已删除: {volunteer_id}")
        except ServiceError:
            db.rollback()
            raise
        except Exception as e:
            logger.error(f"删除志愿者异常: {e}")
            db.rollback()
            raise

    async def set_password(self,
                           db: Session,
                           volunteer_id: int,
                           new_password: str,
                           old_password: Optional[str] = None) -> None:
        """志愿者设置或修改密码；已有密码时必须提供正确的旧密码"""
        try:
            volunteer = await self.get_volunteer(db, volunteer_id)
            try:
                password_utils.check_strength(new_password)
            except ValueError as ve:
                raise ValidationError(str(ve))

            if volunteer.password_hash:
                if not old_password:
                    raise ValidationError("修改密码需要提供旧密码")
                if not password_utils.verify_password(old_password, volunteer.password_hash):
                    raise AuthenticationError("旧密码错误")
            elif old_password:
                raise ValidationError("账号尚未设置密码，请勿提供旧密码")

            volunteer.password_hash = password_utils.hash_password(new_password)
            db.commit()
            logger.info(f"志愿者密码已更新: {volunteer_id}")
        except ServiceError as se:
            logger.warning(f"设置密码失败: volunteer_id={volunteer_id} {se.message}")
            db.rollback()
            raise
        except Exception as e:
            logger.error(f"设置密码异常: {e}")
            db.rollback()
            raise

    async def export_volunteers(self, db: Session) -> List[Volunteer]:
        return list(db.execute(select(Volunteer).order_by(Volunteer.name, Volunteer.id)).scalars().all())
