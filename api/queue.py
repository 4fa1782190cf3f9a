"""
Queue API Endpoints

職責：
1. 查詢隊伍
2. 加入 / 離開
3. 暫停 / 恢復
4. 換講者
5. 上下移動

所有業務邏輯集中在 QueueManager，這裡只做轉換
"""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
import logging

from database import get_db
from schemas import (
    QueueJoin,
    QueueJoinResponse,
    QueueEntryResponse,
    PauseUpdate,
    PromotionResponse,
    MoveResponse,
    ActionResponse
)
from core.queue_manager import QueueManager
from core.state_machine import PromotionResult
from api.deps import get_current_user_id
from api.errors import to_http_exception

router = APIRouter(prefix="/api/spaces", tags=["queue"])
logger = logging.getLogger(__name__)


def _promotion_response(result: PromotionResult) -> PromotionResponse:
    return PromotionResponse(
        next_speaker_id=result.next_speaker_id,
        promoted=result.promoted,
        spoken_seconds=result.spoken_seconds
    )


@router.get("/{space_id}/queue", response_model=List[QueueEntryResponse])
def get_queue(space_id: UUID, db: Session = Depends(get_db)):
    """取得隊伍（依 position 排序）"""
    try:
        entries = QueueManager.get_queue(db, space_id)
        return [QueueEntryResponse.model_validate(entry) for entry in entries]
    except Exception as e:
        raise to_http_exception(e)


@router.post("/{space_id}/queue", response_model=QueueJoinResponse)
def join_queue(
    space_id: UUID,
    join_data: QueueJoin,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    加入隊伍

    已經在隊伍中時只更新留言（already_in_queue=True）
    """
    try:
        result = QueueManager.join(db, space_id, user_id, join_data.message)
        logger.info(
            f"User {user_id} joined queue of space {space_id} "
            f"(already_in_queue={result.already_in_queue})"
        )
        return QueueJoinResponse(
            already_in_queue=result.already_in_queue,
            entry_id=result.entry_id
        )
    except Exception as e:
        raise to_http_exception(e)


@router.delete("/{space_id}/queue/{entry_id}", response_model=PromotionResponse)
def leave_queue(space_id: UUID, entry_id: UUID, db: Session = Depends(get_db)):
    """離開隊伍；如果是講者，返回新的講者"""
    try:
        return _promotion_response(QueueManager.leave_queue(db, entry_id, space_id))
    except Exception as e:
        raise to_http_exception(e)


@router.post("/{space_id}/queue/{entry_id}/pause", response_model=ActionResponse)
def toggle_pause(
    space_id: UUID,
    entry_id: UUID,
    pause_data: PauseUpdate,
    db: Session = Depends(get_db)
):
    try:
        QueueManager.toggle_pause(db, entry_id, space_id, pause_data.paused)
        return ActionResponse()
    except Exception as e:
        raise to_http_exception(e)


@router.post("/{space_id}/queue/{entry_id}/promote", response_model=PromotionResponse)
def promote_next_speaker(space_id: UUID, entry_id: UUID, db: Session = Depends(get_db)):
    """結束 entry_id 的發言並換下一位"""
    try:
        return _promotion_response(QueueManager.promote_next_speaker(db, entry_id, space_id))
    except Exception as e:
        raise to_http_exception(e)


@router.post("/{space_id}/promote-next", response_model=PromotionResponse)
def promote_next_in_line(space_id: UUID, db: Session = Depends(get_db)):
    """沒有講者時讓下一位上台"""
    try:
        return _promotion_response(QueueManager.promote_next_in_line(db, space_id))
    except Exception as e:
        raise to_http_exception(e)


@router.post("/{space_id}/queue/move-up", response_model=MoveResponse)
def move_up(
    space_id: UUID,
    target_user_id: Optional[str] = Query(None),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """上移一位（target_user_id 省略時為自己）；已經在第一位時 moved=False"""
    try:
        return MoveResponse(moved=QueueManager.move_up(db, target_user_id or user_id, space_id))
    except Exception as e:
        raise to_http_exception(e)


@router.post("/{space_id}/queue/move-down", response_model=MoveResponse)
def move_down(
    space_id: UUID,
    target_user_id: Optional[str] = Query(None),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    try:
        return MoveResponse(moved=QueueManager.move_down(db, target_user_id or user_id, space_id))
    except Exception as e:
        raise to_http_exception(e)
