"""
Queue Manager：對外的排隊操作入口

職責：
1. 加入 / 離開隊伍
2. 暫停 / 恢復
3. 換講者
4. 上下移動
5. 啟用 / 停用 Space（清空隊伍、開關 SpaceSession）
6. 查詢隊伍

原則：
- 每個寫入操作都是一個 transaction（@transactional），並且先鎖定 Space
- 使用者與 Space 一律由參數傳入，沒有全域的請求狀態
- 核心不變量的錯誤原樣往上拋；只有計數器是盡力而為
"""
from dataclasses import dataclass
from typing import List, Optional
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from models import QueueEntry, Space, SpaceSession, EventLog
from core.entry_store import EntryStore
from core.locks import with_space_lock
from core.state_machine import SpeakerStateMachine, PromotionResult
from core.session_recorder import SessionRecorder
from core.exceptions import (
    SpaceNotFound,
    SpaceNotActive,
    PositionConflict,
    SpaceOwnershipRequired
)
from services import position_service
from database import transactional, get_settings

logger = logging.getLogger(__name__)


@dataclass
class JoinResult:
    already_in_queue: bool
    entry_id: UUID


@dataclass
class SpaceStatusResult:
    space: Space
    session: Optional[SpaceSession]


def _lock_space(db: Session, space_id: UUID) -> Space:
    space = with_space_lock(space_id, db).first()
    if not space:
        raise SpaceNotFound(space_id)
    return space


def _require_active(space: Space) -> None:
    if not space.is_active:
        raise SpaceNotActive(space.id)


class QueueManager:
    """排隊操作入口"""

    @staticmethod
    def join(db: Session, space_id: UUID, user_id: str, message: Optional[str] = None) -> JoinResult:
        """
        加入隊伍

        流程：
        1. 在 transaction 內嘗試加入（見 _join_once）
        2. 如果和同時加入的人搶到同一個 position（PositionConflict），
           換一個新的 transaction 重試，最多 settings.join_max_attempts 次

        參數：
            db: SQLAlchemy Session
            space_id: Space UUID
            user_id: 使用者 ID
            message: 排隊留言（可選）

        返回：
            JoinResult

        異常：
            SpaceNotFound: Space 不存在
            SpaceNotActive: Space 未啟用
            PositionConflict: 重試次數用完仍然衝突
        """
        attempts = max(get_settings().join_max_attempts, 1)
        for attempt in range(1, attempts + 1):
            try:
                return QueueManager._join_once(db, space_id, user_id, message)
            except PositionConflict:
                if attempt == attempts:
                    raise
                logger.warning(
                    f"Position collision while user {user_id} joined space {space_id}, "
                    f"retrying ({attempt}/{attempts})"
                )

    @staticmethod
    @transactional
    def _join_once(db: Session, space_id: UUID, user_id: str, message: Optional[str]) -> JoinResult:
        """
        前置條件：
        - Space 必須存在
        - 已經在隊伍中：只更新留言（有給非空留言時），不改變位置與講者狀態
        - 尚未在隊伍中：Space 必須已啟用
        """
        # 1. 取得並鎖定 Space
        space = _lock_space(db, space_id)
        store = EntryStore(db)

        # 2. 已經在隊伍中
        existing = store.find_by_user(space_id, user_id)
        if existing is not None:
            if message:
                existing.message = message
                db.flush()
                logger.info(f"Updated queue message for user {user_id} in space {space_id}")
            return JoinResult(already_in_queue=True, entry_id=existing.id)

        # 3. 新加入
        _require_active(space)
        entry = SpeakerStateMachine.join(db, space_id, user_id, message, space_active=space.is_active)

        # 4. 計數器（盡力而為）
        SessionRecorder.record_join(db, space_id)

        return JoinResult(already_in_queue=False, entry_id=entry.id)

    @staticmethod
    @transactional
    def leave_queue(db: Session, entry_id: UUID, space_id: UUID) -> PromotionResult:
        """
        離開隊伍

        如果離開的是講者，下一位會立刻上台；之後一律重新編號

        異常：
            SpaceNotFound / QueueEntryNotFound
        """
        _lock_space(db, space_id)
        return SpeakerStateMachine.leave(db, entry_id, space_id)

    @staticmethod
    @transactional
    def toggle_pause(db: Session, entry_id: UUID, space_id: UUID, paused: bool) -> QueueEntry:
        """設定暫停狀態（直接設定，不會換講者）"""
        _lock_space(db, space_id)
        return SpeakerStateMachine.set_paused(db, entry_id, space_id, paused)

    @staticmethod
    @transactional
    def promote_next_speaker(db: Session, current_entry_id: UUID, space_id: UUID) -> PromotionResult:
        """
        結束目前講者並換下一位

        前置條件：
            Space 必須已啟用

        異常：
            SpaceNotFound / SpaceNotActive / QueueEntryNotFound
        """
        space = _lock_space(db, space_id)
        _require_active(space)
        return SpeakerStateMachine.promote_speaker(db, current_entry_id, space_id)

    @staticmethod
    @transactional
    def promote_next_in_line(db: Session, space_id: UUID) -> PromotionResult:
        """
        沒有講者時，讓下一位上台

        異常：
            SpaceNotFound / SpaceNotActive
        """
        space = _lock_space(db, space_id)
        _require_active(space)
        return SpeakerStateMachine.promote_next(db, space_id)

    @staticmethod
    @transactional
    def move_up(db: Session, user_id: str, space_id: UUID) -> bool:
        _lock_space(db, space_id)
        return position_service.move_up(user_id, space_id, db)

    @staticmethod
    @transactional
    def move_down(db: Session, user_id: str, space_id: UUID) -> bool:
        _lock_space(db, space_id)
        return position_service.move_down(user_id, space_id, db)

    @staticmethod
    def clear_queue(db: Session, space_id: UUID) -> int:
        """
        刪除 Space 內所有排隊紀錄

        只在已鎖定 Space 的 transaction 內使用（停用 Space 時）

        返回：
            刪除筆數
        """
        cleared = EntryStore(db).delete_all(space_id)
        if cleared:
            db.add(EventLog(
                space_id=space_id,
                event_type="QUEUE_CLEARED",
                data={"entries": cleared}
            ))
        logger.info(f"Cleared {cleared} queue entries in space {space_id}")
        return cleared

    @staticmethod
    @transactional
    def toggle_space_status(db: Session, space_id: UUID, active: bool, user_id: str) -> SpaceStatusResult:
        """
        啟用 / 停用 Space

        前置條件：
        1. Space 必須存在
        2. 只有擁有者可以切換
        3. 啟用時必須是未啟用；停用時必須是已啟用

        流程：
        - 啟用：開新的 SpaceSession
        - 停用：清空隊伍，關閉 SpaceSession

        參數：
            db: SQLAlchemy Session
            space_id: Space UUID
            active: 目標狀態
            user_id: 操作者 ID

        返回：
            SpaceStatusResult（更新後的 Space 與相關的 SpaceSession）

        異常：
            SpaceNotFound: Space 不存在
            SpaceOwnershipRequired: 操作者不是擁有者
            SpaceAlreadyActive / SpaceNotActive: 狀態不允許
        """
        # 1. 取得並鎖定 Space（名稱用於 log）
        space = _lock_space(db, space_id)
        if space.user_id != user_id:
            raise SpaceOwnershipRequired(space_id, user_id)

        logger.info(
            f"Toggling space '{space.name}' ({space.slug}) to {'active' if active else 'inactive'}"
        )

        # 2. 狀態轉換
        if active:
            session = SessionRecorder.activate(db, space, user_id)
        else:
            session = SessionRecorder.deactivate(
                db,
                space,
                lambda sid: QueueManager.clear_queue(db, sid)
            )

        return SpaceStatusResult(space=space, session=session)

    @staticmethod
    def get_queue(db: Session, space_id: UUID) -> List[QueueEntry]:
        """
        取得隊伍（依 position 由小到大）

        異常：
            SpaceNotFound: Space 不存在
        """
        store = EntryStore(db)
        store.get_space(space_id)
        return store.list_entries(space_id)
