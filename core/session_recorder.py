"""
Session Recorder：記錄 Space 的啟用區間與排隊統計

職責：
1. 啟用 Space（開一個新的 SpaceSession）
2. 停用 Space（清空隊伍、關閉 SpaceSession）
3. 累加加入次數（SpaceSession 與 SpaceHistoryRecord）

計數器是「盡力而為」的附帶紀錄：失敗只記 log，不能擋住觸發它的主要操作。
每個計數器各自在 SAVEPOINT 內用 count = count + 1 更新，不需要先讀再寫。
"""
from typing import Callable, Optional
from uuid import UUID
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models import Space, SpaceSession, SpaceHistoryRecord, EventLog
from core.exceptions import SpaceAlreadyActive, SpaceNotActive
from services import clock

logger = logging.getLogger(__name__)


class SessionRecorder:
    """Space 啟用區間與計數紀錄"""

    @staticmethod
    def get_open_session(db: Session, space_id: UUID) -> Optional[SpaceSession]:
        return db.query(SpaceSession).filter(
            SpaceSession.space_id == space_id,
            SpaceSession.deactivated_at.is_(None)
        ).order_by(SpaceSession.activated_at.desc()).first()

    @staticmethod
    def activate(db: Session, space: Space, by_user: str) -> SpaceSession:
        """
        啟用 Space（inactive -> active）

        前置條件：
            Space 必須是未啟用狀態（呼叫者需先鎖定 Space）

        流程：
        1. 開一個新的 SpaceSession（queue_count = 0）
        2. 設定 activated_at 並把 Space 設為啟用
        3. 記錄事件

        參數：
            db: SQLAlchemy Session
            space: 已鎖定的 Space
            by_user: 啟用者 ID

        返回：
            新的 SpaceSession

        異常：
            SpaceAlreadyActive: Space 已經啟用
        """
        if space.is_active:
            raise SpaceAlreadyActive(space.id)

        now = clock.utcnow()
        session = SpaceSession(
            space_id=space.id,
            activated_by=by_user,
            activated_at=now,
            queue_count=0,
            total_speaking_time=0
        )
        db.add(session)

        space.is_active = True
        space.activated_at = now
        db.flush()

        db.add(EventLog(
            space_id=space.id,
            event_type="SPACE_ACTIVATED",
            data={"session_id": str(session.id), "activated_by": by_user}
        ))

        logger.info(f"Space {space.id} activated by {by_user}, session {session.id}")
        return session

    @staticmethod
    def deactivate(db: Session, space: Space, clear_queue: Callable[[UUID], int]) -> Optional[SpaceSession]:
        """
        停用 Space（active -> inactive）

        流程：
        1. 呼叫 clear_queue 清空隊伍（停用後隊伍不保留）
        2. 關閉目前的 SpaceSession（deactivated_at = now）
        3. 把 Space 設為未啟用、清除 activated_at

        參數：
            db: SQLAlchemy Session
            space: 已鎖定的 Space
            clear_queue: 清空隊伍的函式（由 QueueManager 提供），回傳刪除筆數

        返回：
            被關閉的 SpaceSession；資料不一致找不到時為 None

        異常：
            SpaceNotActive: Space 本來就是未啟用
        """
        if not space.is_active:
            raise SpaceNotActive(space.id)

        space_id = space.id
        cleared = clear_queue(space_id)

        now = clock.utcnow()
        session = SessionRecorder.get_open_session(db, space_id)
        if session is not None:
            session.deactivated_at = now
        else:
            logger.warning(f"Space {space_id} was active without an open session")

        space.is_active = False
        space.activated_at = None
        db.flush()

        db.add(EventLog(
            space_id=space_id,
            event_type="SPACE_DEACTIVATED",
            data={
                "session_id": str(session.id) if session else None,
                "cleared_entries": cleared
            }
        ))

        logger.info(f"Space {space_id} deactivated, cleared {cleared} queue entries")
        return session

    @staticmethod
    def _best_effort_increment(db: Session, label: str, query, column, amount: int) -> None:
        try:
            with db.begin_nested():
                query.update({column: column + amount}, synchronize_session=False)
        except SQLAlchemyError as e:
            logger.warning(f"Failed to increment {label}: {e}")

    @staticmethod
    def record_join(db: Session, space_id: UUID) -> None:
        """
        累加加入次數：目前開著的 SpaceSession 與 SpaceHistoryRecord

        呼叫者必須先確認 Space 已啟用；失敗只記 log，不往上拋
        """
        SessionRecorder._best_effort_increment(
            db,
            f"session queue_count for space {space_id}",
            db.query(SpaceSession).filter(
                SpaceSession.space_id == space_id,
                SpaceSession.deactivated_at.is_(None)
            ),
            SpaceSession.queue_count,
            1
        )
        SessionRecorder._best_effort_increment(
            db,
            f"history queue_count for space {space_id}",
            db.query(SpaceHistoryRecord).filter(
                SpaceHistoryRecord.space_id == space_id,
                SpaceHistoryRecord.deleted_at.is_(None)
            ),
            SpaceHistoryRecord.queue_count,
            1
        )

    @staticmethod
    def record_speaking_time(db: Session, space_id: UUID, seconds: int) -> None:
        """把一次發言的秒數加到目前的 SpaceSession（盡力而為）"""
        SessionRecorder._best_effort_increment(
            db,
            f"session speaking time for space {space_id}",
            db.query(SpaceSession).filter(
                SpaceSession.space_id == space_id,
                SpaceSession.deactivated_at.is_(None)
            ),
            SpaceSession.total_speaking_time,
            seconds
        )
