"""
Entry Store：排隊紀錄的存取介面

所有對 queue_entries 的查詢與寫入都經過這裡，其他元件不直接組 query。
只做 flush，不做 commit（交由外層 @transactional 處理）。
"""
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from models import QueueEntry, Space
from core.exceptions import QueueEntryNotFound, SpaceNotFound
from core.locks import lock_space_entries


class EntryStore:
    """單一 DB Session 上的排隊紀錄 repository"""

    def __init__(self, db: Session):
        self.db = db

    # ============ Space ============

    def get_space(self, space_id: UUID) -> Space:
        space = self.db.query(Space).filter(Space.id == space_id).first()
        if not space:
            raise SpaceNotFound(space_id)
        return space

    # ============ 讀取 ============

    def get_entry(self, entry_id: UUID, space_id: Optional[UUID] = None) -> QueueEntry:
        """
        取得排隊紀錄

        參數：
            entry_id: 排隊紀錄 UUID
            space_id: 如果有給，紀錄必須屬於這個 Space

        異常：
            QueueEntryNotFound: 紀錄不存在或不屬於該 Space
        """
        query = self.db.query(QueueEntry).filter(QueueEntry.id == entry_id)
        if space_id is not None:
            query = query.filter(QueueEntry.space_id == space_id)
        entry = query.first()
        if not entry:
            raise QueueEntryNotFound(entry_id)
        return entry

    def find_by_user(self, space_id: UUID, user_id: str) -> Optional[QueueEntry]:
        return self.db.query(QueueEntry).filter(
            QueueEntry.space_id == space_id,
            QueueEntry.user_id == user_id
        ).first()

    def get_by_user(self, space_id: UUID, user_id: str) -> QueueEntry:
        entry = self.find_by_user(space_id, user_id)
        if not entry:
            raise QueueEntryNotFound(f"user={user_id} space={space_id}")
        return entry

    def get_by_position(self, space_id: UUID, position: int) -> Optional[QueueEntry]:
        return self.db.query(QueueEntry).filter(
            QueueEntry.space_id == space_id,
            QueueEntry.position == position
        ).first()

    def list_entries(self, space_id: UUID, for_update: bool = False) -> List[QueueEntry]:
        """依 position 由小到大列出 Space 內所有排隊紀錄"""
        if for_update:
            return lock_space_entries(space_id, self.db).all()
        return self.db.query(QueueEntry).filter(
            QueueEntry.space_id == space_id
        ).order_by(QueueEntry.position).all()

    def max_position(self, space_id: UUID) -> Optional[int]:
        return self.db.query(func.max(QueueEntry.position)).filter(
            QueueEntry.space_id == space_id
        ).scalar()

    def current_speaker(self, space_id: UUID) -> Optional[QueueEntry]:
        return self.db.query(QueueEntry).filter(
            QueueEntry.space_id == space_id,
            QueueEntry.is_current_speaker == True
        ).first()

    def next_eligible(self, space_id: UUID) -> Optional[QueueEntry]:
        """position 最小、未暫停、也不是目前講者的紀錄"""
        return self.db.query(QueueEntry).filter(
            QueueEntry.space_id == space_id,
            QueueEntry.is_paused == False,
            QueueEntry.is_current_speaker == False
        ).order_by(QueueEntry.position).first()

    # ============ 寫入 ============

    def add(self, entry: QueueEntry) -> QueueEntry:
        self.db.add(entry)
        self.db.flush()
        return entry

    def delete(self, entry: QueueEntry) -> None:
        self.db.delete(entry)
        self.db.flush()

    def delete_all(self, space_id: UUID) -> int:
        deleted = self.db.query(QueueEntry).filter(
            QueueEntry.space_id == space_id
        ).delete(synchronize_session="fetch")
        return deleted

    def set_position(self, entry: QueueEntry, position: int) -> None:
        # 每次都 flush，避免批次 UPDATE 的順序短暫違反 (space_id, position) 唯一約束
        entry.position = position
        self.db.flush()
