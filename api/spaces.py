"""
Space API Endpoints

職責：
1. 建立 Space
2. 查詢 Space（全部 / 我的 / slug）
3. 啟用 / 停用 Space
"""
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
import logging

from database import get_db
from models import SpaceStatusFilter
from schemas import (
    SpaceCreate,
    SpaceResponse,
    SpaceDetailResponse,
    SpaceStatusUpdate,
    SpaceStatusResponse
)
from core.space_manager import SpaceManager
from core.queue_manager import QueueManager
from api.deps import get_current_user_id
from api.errors import to_http_exception

router = APIRouter(prefix="/api/spaces", tags=["spaces"])
logger = logging.getLogger(__name__)


@router.post("", response_model=SpaceResponse, status_code=201)
def create_space(
    space_data: SpaceCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """建立 Space（預設未啟用）"""
    try:
        space = SpaceManager.create_space(db, space_data.name, user_id, space_data.subject)
        logger.info(f"Space {space.slug} created by {user_id}")
        return SpaceResponse.model_validate(space)
    except Exception as e:
        raise to_http_exception(e)


@router.get("", response_model=List[SpaceResponse])
def list_spaces(
    status: SpaceStatusFilter = Query(SpaceStatusFilter.ALL),
    db: Session = Depends(get_db)
):
    """所有 Space，可用 status=active|inactive|all 篩選"""
    try:
        spaces = SpaceManager.get_all_spaces(db, status)
        return [SpaceResponse.model_validate(space) for space in spaces]
    except Exception as e:
        raise to_http_exception(e)


@router.get("/mine", response_model=List[SpaceResponse])
def list_my_spaces(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    try:
        spaces = SpaceManager.get_user_spaces(db, user_id)
        return [SpaceResponse.model_validate(space) for space in spaces]
    except Exception as e:
        raise to_http_exception(e)


@router.get("/{slug}", response_model=SpaceDetailResponse)
def get_space(
    slug: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    透過 slug 取得 Space

    返回：
        Space 資訊 + is_owner + active_since
    """
    try:
        view = SpaceManager.get_space_by_slug(db, slug, user_id)
        base = SpaceResponse.model_validate(view.space)
        return SpaceDetailResponse(
            **base.model_dump(),
            is_owner=view.is_owner,
            active_since=view.active_since
        )
    except Exception as e:
        raise to_http_exception(e)


@router.post("/{space_id}/status", response_model=SpaceStatusResponse)
def toggle_space_status(
    space_id: UUID,
    status_data: SpaceStatusUpdate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    啟用 / 停用 Space（只有擁有者可以操作）

    停用時會清空隊伍並關閉目前的 session
    """
    try:
        result = QueueManager.toggle_space_status(db, space_id, status_data.active, user_id)
        logger.info(f"Space {space_id} set active={status_data.active} by {user_id}")
        return SpaceStatusResponse(
            space_id=space_id,
            is_active=result.space.is_active,
            session_id=result.session.id if result.session else None
        )
    except Exception as e:
        raise to_http_exception(e)
