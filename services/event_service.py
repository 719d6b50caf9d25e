# 标准库
from typing import Optional, List

# 第三方库
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload
from loguru import logger

# 自定义模块
from models.database import Committee, Event
from schemas import EventCreate, CommitteeCreate, CommitteeUpdate
from utils.time_utils import to_local_naive
from .exceptions import ServiceError, ValidationError, NotFoundError, ConflictError
from .query_filters import clamp_limit, clamp_offset


def committee_to_dict(committee: Committee) -> dict:
    return {
        "id": committee.id,
        "event_id": committee.event_id,
        "name": committee.name,
        "description": committee.description,
        "event_name": committee.event.name if committee.event else None,
        "created_at": committee.created_at,
    }


class EventService(object):
    """活动与委员会的简单增删改查"""

    async def create_event(self, db: Session, payload: EventCreate) -> Event:
        try:
            event = Event(
                name=payload.name.strip(),
                venue=payload.venue,
                tz=payload.tz,
                starts_at=to_local_naive(payload.starts_at),
                ends_at=to_local_naive(payload.ends_at),
            )
            db.add(event)
            db.commit()
            db.refresh(event)
            logger.info(f"活动创建成功: {event.id} {event.name}")
            return event
        except Exception as e:
            logger.error(f"创建活动失败: {e}")
            db.rollback()
            raise

    async def list_events(self, db: Session) -> List[Event]:
        return list(db.execute(select(Event).order_by(Event.starts_at, Event.id)).scalars().all())

    async def get_event(self, db: Session, event_id: int) -> Event:
        event = db.get(Event, event_id)
        if event is None:
            raise NotFoundError(f"活动 {event_id} 不存在")
        return event

    async def delete_event(self, db: Session, event_id: int) -> None:
        try:
            event = await self.get_event(db, event_id)
            db.delete(event)
            db.commit()
            logger.info(f"活动已删除: {event_id}")
        except ServiceError:
            db.rollback()
            raise
        except Exception as e:
            logger.error(f"删除活动失败: {e}")
            db.rollback()
            raise

    async def create_committee(self, db: Session, payload: CommitteeCreate) -> Committee:
        try:
            if db.get(Event, payload.event_id) is None:
                raise ValidationError(f"活动 {payload.event_id} 不存在")
            committee = Committee(
                event_id=payload.event_id, name=payload.name.strip(), description=payload.description
            )
            db.add(committee)
            db.commit()
            db.refresh(committee)
            logger.info(f"委员会创建成功: {committee.id} {committee.name}")
            return committee
        except IntegrityError:
            db.rollback()
            raise ConflictError(f"活动 {payload.event_id} 下已存在同名委员会 {payload.name}")
        except ServiceError as se:
            logger.warning(f"创建委员会参数错误: {se.message}")
            db.rollback()
            raise
        except Exception as e:
            logger.error(f"创建委员会失败: {e}")
            db.rollback()
            raise

    async def list_committees(self,
                              db: Session,
                              event_id: Optional[int] = None,
                              limit: int = 100,
                              offset: int = 0) -> List[Committee]:
        stmt = select(Committee).options(joinedload(Committee.event))
        if event_id:
            stmt = stmt.where(Committee.event_id == event_id)
        stmt = stmt.order_by(Committee.name, Committee.id).limit(clamp_limit(limit)).offset(clamp_offset(offset))
        return list(db.execute(stmt).scalars().all())

    async def get_committee(self, db: Session, committee_id: int) -> Committee:
        committee = db.get(Committee, committee_id)
        if committee is None:
            raise NotFoundError(f"委员会 {committee_id} 不存在")
        return committee

    async def update_committee(self, db: Session, committee_id: int, payload: CommitteeUpdate) -> Committee:
        try:
            committee = await self.get_committee(db, committee_id)
            changes = payload.model_dump(exclude_unset=True)
            if not changes:
                raise ValidationError("没有需要更新的字段")
            if changes.get("name"):
                committee.name = changes["name"].strip()
            if "description" in changes:
                committee.description = changes["description"]
            db.commit()
            db.refresh(committee)
            return committee
        except IntegrityError:
            db.rollback()
            raise ConflictError("同一活动下委员会名称不能重复")
        except ServiceError:
            db.rollback()
            raise
        except Exception as e:
            logger.error(f"更新委员会失败: {e}")
            db.rollback()
            raise

    async def delete_committee(self, db: Session, committee_id: int) -> None:
        """删除委员会，级联删除其排班与出勤记录"""
        try:
            committee = await self.get_committee(db, committee_id)
            db.delete(committee)
            db.commit()
            logger.info(f"委员会已删除: {committee_id}")
        except ServiceError:
            db.rollback()
            raise
        except Exception as e:
            logger.error(f"删除委员会失败: {e}")
            db.rollback()
            raise
