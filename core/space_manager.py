"""
Space Manager：管理 Space 的建立與查詢

職責：
1. 建立 Space（含 SpaceHistoryRecord）
2. 查詢 Space（slug / id / 擁有者 / 狀態）

啟用與停用屬於排隊流程，由 QueueManager.toggle_space_status 負責
"""
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from models import Space, SpaceHistoryRecord, EventLog, SpaceStatusFilter
from core.exceptions import SpaceNotFound, ValidationError
from services import clock
from services.naming_service import generate_slug, slug_exists
from database import transactional, get_settings

logger = logging.getLogger(__name__)


@dataclass
class SpaceView:
    """Space 加上「從誰的角度看」的資訊"""
    space: Space
    is_owner: bool
    active_since: Optional[datetime]


class SpaceManager:
    """Space 生命週期管理器"""

    @staticmethod
    @transactional
    def create_space(db: Session, name: str, user_id: str, subject: Optional[str] = None) -> Space:
        """
        建立新的 Space（預設未啟用）

        流程：
        1. 生成唯一的 slug
        2. 建立 Space
        3. 建立 SpaceHistoryRecord（累計排隊數）
        4. 記錄事件

        參數：
            db: SQLAlchemy Session
            name: Space 名稱（不可空白）
            user_id: 擁有者 ID
            subject: 主題（可選）

        返回：
            新的 Space

        異常：
            ValidationError: 名稱空白
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Space name is required")

        # 1. 生成唯一的 slug
        length = get_settings().slug_length
        slug = generate_slug(length)
        while slug_exists(slug, db):
            logger.warning(f"Space slug collision detected, regenerating: {slug}")
            slug = generate_slug(length)

        # 2. 建立 Space
        space = Space(
            name=name,
            subject=subject or None,
            slug=slug,
            user_id=user_id,
            is_active=False,
            activated_at=None,
            created_at=clock.utcnow()
        )
        db.add(space)
        db.flush()  # 取得 space.id

        # 3. 建立歷史紀錄
        db.add(SpaceHistoryRecord(
            space_id=space.id,
            space_name=name,
            queue_count=0
        ))

        # 4. 記錄事件
        db.add(EventLog(
            space_id=space.id,
            event_type="SPACE_CREATED",
            data={"slug": slug, "user_id": user_id}
        ))

        logger.info(f"Created space {space.id} with slug {slug} for user {user_id}")
        return space

    @staticmethod
    def get_space_by_id(db: Session, space_id: UUID) -> Space:
        space = db.query(Space).filter(Space.id == space_id).first()
        if not space:
            raise SpaceNotFound(space_id)
        return space

    @staticmethod
    def get_space_by_slug(db: Session, slug: str, user_id: Optional[str] = None) -> SpaceView:
        """
        透過 slug 取得 Space

        參數：
            db: SQLAlchemy Session
            slug: Space slug
            user_id: 目前使用者（用來判斷 is_owner）

        異常：
            SpaceNotFound: Space 不存在
        """
        space = db.query(Space).filter(Space.slug == slug).first()
        if not space:
            raise SpaceNotFound(f"slug {slug}")
        return SpaceView(
            space=space,
            is_owner=user_id is not None and space.user_id == user_id,
            active_since=space.activated_at
        )

    @staticmethod
    def get_user_spaces(db: Session, user_id: str) -> List[Space]:
        """使用者擁有的 Space，最新建立的在前"""
        return db.query(Space).filter(
            Space.user_id == user_id
        ).order_by(Space.created_at.desc()).all()

    @staticmethod
    def get_all_spaces(db: Session, status: SpaceStatusFilter = SpaceStatusFilter.ALL) -> List[Space]:
        """所有 Space，可依啟用狀態篩選，最新建立的在前"""
        query = db.query(Space)
        if status == SpaceStatusFilter.ACTIVE:
            query = query.filter(Space.is_active == True)
        elif status == SpaceStatusFilter.INACTIVE:
            query = query.filter(Space.is_active == False)
        return query.order_by(Space.created_at.desc()).all()
