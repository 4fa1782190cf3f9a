"""
並發控制工具

提供 Database-level 的鎖定機制，防止競態條件（Race Condition）

主要使用 PostgreSQL 的 SELECT ... FOR UPDATE 來實現悲觀鎖（Pessimistic Locking）

同一個 Space 的所有排隊紀錄視為一個協調單位：任何「先讀再寫」的操作
（計算下一個 position、換講者、重新編號）都必須先鎖住 Space 這一列。
"""
from sqlalchemy.orm import Session, Query
from uuid import UUID

from models import Space, QueueEntry


def with_space_lock(space_id: UUID, db: Session) -> Query:
    """
    鎖定一個 Space（行級鎖），作為該 Space 排隊資料的序列化點

    使用場景：
    - 加入 / 離開排隊
    - 換講者
    - 啟用 / 停用 Space

    範例：
        space = with_space_lock(space_id, db).first()
        if not space:
            raise SpaceNotFound(space_id)

    參數：
        space_id: Space 的 UUID
        db: SQLAlchemy Session

    返回：
        Query object（需要呼叫 .first() 或 .one() 來取得結果）

    注意：
        - nowait=False 表示如果鎖被佔用，會等待
        - 必須在 transaction 內使用（確保有 commit 或 rollback）
        - SQLite 不支援 FOR UPDATE（會被忽略），由寫入鎖與唯一約束兜底
    """
    return db.query(Space).filter(
        Space.id == space_id
    ).with_for_update(nowait=False)


def lock_space_entries(space_id: UUID, db: Session) -> Query:
    """
    鎖定 Space 內所有排隊紀錄（依 position 排序）

    用於重新編號等批次更新

    參數：
        space_id: Space UUID
        db: SQLAlchemy Session

    返回：
        Query object（呼叫 .all() 取得所有結果）
    """
    return db.query(QueueEntry).filter(
        QueueEntry.space_id == space_id
    ).order_by(QueueEntry.position).with_for_update(nowait=False)
