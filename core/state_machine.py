"""
講者狀態機：集中管理排隊紀錄的狀態轉換

狀態（由旗標推導，見 QueueEntry.state）：
    WAITING  --pause-->   PAUSED
    SPEAKING --pause-->   PAUSED（仍保有講者旗標，不會自動換人）
    PAUSED   --resume-->  WAITING / SPEAKING
    WAITING  --promote--> SPEAKING
    任何狀態 --leave-->   REMOVED（資料列刪除）

不變量：
- 同一個 Space 最多一位講者（is_current_speaker = True）
- started_speaking_at 只在講者身上不為 NULL
- 換人一律依 position 由小到大；暫停是唯一的篩選條件

所有方法都只 flush，不 commit，必須在已鎖定 Space 的 transaction 內呼叫
"""
from dataclasses import dataclass
from typing import Optional
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from models import QueueEntry, EventLog
from core.exceptions import NotCurrentSpeaker
from core.entry_store import EntryStore
from core.session_recorder import SessionRecorder
from services import clock
from services.position_service import next_position, renumber

logger = logging.getLogger(__name__)


@dataclass
class PromotionResult:
    """換講者的結果；next_speaker_id 為 None 代表沒有可以上台的人"""
    next_speaker_id: Optional[UUID]
    promoted: bool = False
    spoken_seconds: Optional[int] = None


class SpeakerStateMachine:
    """講者狀態轉換"""

    @staticmethod
    def join(
        db: Session,
        space_id: UUID,
        user_id: str,
        message: Optional[str] = None,
        space_active: bool = True
    ) -> QueueEntry:
        """
        建立新的排隊紀錄

        流程：
        1. 計算下一個 position
        2. 如果隊伍原本是空的且 Space 已啟用，直接成為講者
        3. 寫入並 flush（position 衝突會在這裡以 IntegrityError 浮現）

        參數：
            db: SQLAlchemy Session
            space_id: Space UUID
            user_id: 使用者 ID
            message: 排隊留言（可選）
            space_active: Space 是否啟用

        返回：
            新建立的 QueueEntry
        """
        position = next_position(space_id, db)
        speaks_now = position == 1 and space_active

        entry = QueueEntry(
            space_id=space_id,
            user_id=user_id,
            message=message or None,
            position=position,
            is_paused=False,
            is_current_speaker=speaks_now,
            joined_at=clock.utcnow(),
            started_speaking_at=clock.utcnow() if speaks_now else None,
            total_speaking_time=0
        )
        EntryStore(db).add(entry)

        db.add(EventLog(
            space_id=space_id,
            event_type="QUEUE_JOINED",
            data={"user_id": user_id, "position": position}
        ))
        if speaks_now:
            db.add(EventLog(
                space_id=space_id,
                event_type="SPEAKER_PROMOTED",
                data={"entry_id": str(entry.id), "user_id": user_id, "reason": "first_in_line"}
            ))

        logger.info(
            f"User {user_id} joined space {space_id} at position {position}"
            f"{' as current speaker' if speaks_now else ''}"
        )
        return entry

    @staticmethod
    def set_paused(db: Session, entry_id: UUID, space_id: UUID, paused: bool) -> QueueEntry:
        """
        設定暫停旗標（直接設定，沒有連鎖效果）

        暫停目前的講者不會結束他的發言時間，也不會換下一位
        """
        entry = EntryStore(db).get_entry(entry_id, space_id)
        if entry.is_paused != paused:
            entry.is_paused = paused
            db.flush()
            logger.info(
                f"Queue entry {entry_id} in space {space_id} "
                f"{'paused' if paused else 'resumed'} (state={entry.state.value})"
            )
        return entry

    @staticmethod
    def pause(db: Session, entry_id: UUID, space_id: UUID) -> QueueEntry:
        return SpeakerStateMachine.set_paused(db, entry_id, space_id, True)

    @staticmethod
    def resume(db: Session, entry_id: UUID, space_id: UUID) -> QueueEntry:
        return SpeakerStateMachine.set_paused(db, entry_id, space_id, False)

    @staticmethod
    def promote_next(db: Session, space_id: UUID) -> PromotionResult:
        """
        讓下一位上台

        規則：
        - 已經有講者時不做任何事，回傳現任講者（同時間只能有一位講者）
        - 否則挑 position 最小、未暫停的紀錄
        - 沒有符合條件的人時回傳 next_speaker_id=None（不是錯誤）

        參數：
            db: SQLAlchemy Session
            space_id: Space UUID

        返回：
            PromotionResult
        """
        store = EntryStore(db)

        current = store.current_speaker(space_id)
        if current is not None:
            logger.info(f"Space {space_id} already has current speaker {current.id}, nothing to promote")
            return PromotionResult(next_speaker_id=current.id, promoted=False)

        candidate = store.next_eligible(space_id)
        if candidate is None:
            logger.info(f"No next speaker available in space {space_id}")
            return PromotionResult(next_speaker_id=None, promoted=False)

        candidate.is_current_speaker = True
        candidate.started_speaking_at = clock.utcnow()
        db.flush()

        db.add(EventLog(
            space_id=space_id,
            event_type="SPEAKER_PROMOTED",
            data={"entry_id": str(candidate.id), "user_id": candidate.user_id, "position": candidate.position}
        ))

        logger.info(
            f"Promoted user {candidate.user_id} (entry {candidate.id}, position {candidate.position}) "
            f"to current speaker in space {space_id}"
        )
        return PromotionResult(next_speaker_id=candidate.id, promoted=True)

    @staticmethod
    def end_turn(db: Session, entry: QueueEntry) -> Optional[int]:
        """
        結束講者的發言時間

        - 計算發言秒數（無條件捨去）並累加到 total_speaking_time
        - 清除講者旗標與 started_speaking_at
        - started_speaking_at 為 NULL（不一致狀態）時跳過計時，仍然清除旗標

        返回：
            發言秒數；無法計算時為 None
        """
        spoken = None
        if entry.started_speaking_at is not None:
            spoken = clock.elapsed_seconds(entry.started_speaking_at)
            entry.total_speaking_time = (entry.total_speaking_time or 0) + spoken
        else:
            logger.warning(
                f"Queue entry {entry.id} in space {entry.space_id} has no started_speaking_at, "
                f"skipping speaking time accounting"
            )

        entry.is_current_speaker = False
        entry.started_speaking_at = None
        db.flush()

        db.add(EventLog(
            space_id=entry.space_id,
            event_type="TURN_ENDED",
            data={"entry_id": str(entry.id), "user_id": entry.user_id, "seconds": spoken}
        ))
        return spoken

    @staticmethod
    def remove(db: Session, entry: QueueEntry) -> bool:
        """
        刪除排隊紀錄（重新編號由呼叫者負責）

        返回：
            被刪除的紀錄是否為講者
        """
        space_id = entry.space_id
        was_speaker = bool(entry.is_current_speaker)
        user_id = entry.user_id
        position = entry.position

        EntryStore(db).delete(entry)

        db.add(EventLog(
            space_id=space_id,
            event_type="QUEUE_LEFT",
            data={"user_id": user_id, "position": position, "was_speaker": was_speaker}
        ))
        logger.info(f"User {user_id} left space {space_id} (position {position})")
        return was_speaker

    @staticmethod
    def leave(db: Session, entry_id: UUID, space_id: UUID) -> PromotionResult:
        """
        離開隊伍（不論等待、暫停或發言中）

        流程：
        1. 刪除紀錄
        2. 如果是講者，立刻讓下一位上台
        3. 重新編號

        返回：
            PromotionResult（不是講者離開時 promoted=False）
        """
        entry = EntryStore(db).get_entry(entry_id, space_id)
        was_speaker = SpeakerStateMachine.remove(db, entry)

        result = PromotionResult(next_speaker_id=None, promoted=False)
        if was_speaker:
            result = SpeakerStateMachine.promote_next(db, space_id)

        renumber(space_id, db)
        return result

    @staticmethod
    def promote_speaker(db: Session, current_entry_id: UUID, space_id: UUID) -> PromotionResult:
        """
        結束目前講者並換下一位

        流程：
        1. 結束發言時間（記錄秒數，並累加到目前的 SpaceSession）
        2. 講完即離開：刪除紀錄並重新編號
        3. 讓下一位上台

        參數：
            db: SQLAlchemy Session
            current_entry_id: 目前講者的排隊紀錄 UUID
            space_id: Space UUID

        返回：
            PromotionResult（含本次發言秒數）

        異常：
            QueueEntryNotFound: 紀錄不存在或不屬於該 Space
            NotCurrentSpeaker: 紀錄存在但不是目前講者
        """
        entry = EntryStore(db).get_entry(current_entry_id, space_id)
        if not entry.is_current_speaker:
            raise NotCurrentSpeaker(current_entry_id)

        spoken = SpeakerStateMachine.end_turn(db, entry)
        if spoken:
            SessionRecorder.record_speaking_time(db, space_id, spoken)

        SpeakerStateMachine.remove(db, entry)
        renumber(space_id, db)

        result = SpeakerStateMachine.promote_next(db, space_id)
        result.spoken_seconds = spoken
        return result
