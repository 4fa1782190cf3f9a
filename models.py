"""
資料模型

- Space：排隊空間（擁有者可以啟用 / 停用）
- QueueEntry：使用者在某個 Space 的排隊位置與講者狀態
- SpaceSession：Space 一次啟用到停用的區間
- SpaceHistoryRecord：Space 整個生命週期的累計排隊數
- EventLog：重要事件紀錄
"""
import enum
import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
    Index,
    Uuid,
)

from database import Base
from services import clock


def _now():
    return clock.utcnow()


class EntryState(str, enum.Enum):
    """排隊紀錄的狀態（由旗標推導；REMOVED 代表資料列已刪除）"""
    WAITING = "WAITING"
    PAUSED = "PAUSED"
    SPEAKING = "SPEAKING"
    REMOVED = "REMOVED"


class SpaceStatusFilter(str, enum.Enum):
    ALL = "all"
    ACTIVE = "active"
    INACTIVE = "inactive"


class Space(Base):
    __tablename__ = "spaces"
    __table_args__ = (
        UniqueConstraint("slug", name="uq_spaces_slug"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)
    subject = Column(Text, nullable=True)
    slug = Column(String(32), nullable=False)
    user_id = Column(String(64), nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=False)
    activated_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)

    def __repr__(self):
        return f"<Space {self.slug} active={self.is_active}>"


class QueueEntry(Base):
    __tablename__ = "queue_entries"
    __table_args__ = (
        UniqueConstraint("space_id", "position", name="uq_queue_entries_space_position"),
        UniqueConstraint("space_id", "user_id", name="uq_queue_entries_space_user"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    space_id = Column(Uuid, ForeignKey("spaces.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    message = Column(Text, nullable=True)
    position = Column(Integer, nullable=False)
    is_paused = Column(Boolean, nullable=False, default=False)
    is_current_speaker = Column(Boolean, nullable=False, default=False)
    joined_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    started_speaking_at = Column(DateTime(timezone=True), nullable=True)
    total_speaking_time = Column(Integer, nullable=False, default=0)

    @property
    def state(self) -> EntryState:
        # 暫停中的講者仍保有講者旗標，但對外顯示為 PAUSED
        if self.is_paused:
            return EntryState.PAUSED
        if self.is_current_speaker:
            return EntryState.SPEAKING
        return EntryState.WAITING

    def __repr__(self):
        return f"<QueueEntry space={self.space_id} user={self.user_id} pos={self.position}>"


class SpaceSession(Base):
    __tablename__ = "space_sessions"
    __table_args__ = (
        Index("ix_space_sessions_space_open", "space_id", "deactivated_at"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    space_id = Column(Uuid, ForeignKey("spaces.id", ondelete="CASCADE"), nullable=False, index=True)
    activated_by = Column(String(64), nullable=True)
    activated_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    deactivated_at = Column(DateTime(timezone=True), nullable=True)
    queue_count = Column(Integer, nullable=False, default=0)
    total_speaking_time = Column(Integer, nullable=False, default=0)


class SpaceHistoryRecord(Base):
    __tablename__ = "space_history"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    space_id = Column(Uuid, ForeignKey("spaces.id", ondelete="CASCADE"), nullable=False, unique=True)
    space_name = Column(String(200), nullable=False)
    queue_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    deleted_at = Column(DateTime(timezone=True), nullable=True)


class EventLog(Base):
    __tablename__ = "event_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    space_id = Column(Uuid, ForeignKey("spaces.id", ondelete="CASCADE"), nullable=False, index=True)
    event_type = Column(String(50), nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
