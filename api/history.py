"""
History API Endpoints

職責：
1. 我目前排隊中的 Space
2. 我擁有的 Space 的啟用紀錄（分頁）
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database import get_db, get_settings
from schemas import ActiveQueueResponse, SessionHistoryItem, SessionHistoryResponse
from services.history_service import get_user_active_queues, get_session_history
from api.deps import get_current_user_id
from api.errors import to_http_exception

router = APIRouter(prefix="/api/me", tags=["history"])


@router.get("/queues", response_model=List[ActiveQueueResponse])
def my_active_queues(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    try:
        return [ActiveQueueResponse(**row) for row in get_user_active_queues(user_id, db)]
    except Exception as e:
        raise to_http_exception(e)


@router.get("/history", response_model=SessionHistoryResponse)
def my_session_history(
    page: int = Query(1),
    page_size: Optional[int] = Query(None, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    啟用紀錄，最新的在前

    page 小於 1 時視為第 1 頁；page_size 省略時使用設定值
    """
    try:
        page = max(page, 1)
        page_size = page_size or get_settings().history_page_size
        items, total = get_session_history(user_id, page, page_size, db)
        return SessionHistoryResponse(
            items=[SessionHistoryItem(**item) for item in items],
            total=total,
            page=page,
            page_size=page_size
        )
    except Exception as e:
        raise to_http_exception(e)
