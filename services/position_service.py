"""
位置服務：計算 position、刪除後重新編號、上下移動

不變量：同一個 Space 的 position 必須剛好是 1..N，沒有空號也沒有重複。

純資料操作，不負責講者狀態，不 commit（交由外層 transaction 處理）
"""
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from core.entry_store import EntryStore

logger = logging.getLogger(__name__)

# 交換位置時的暫存 position（正式 position 從 1 開始，不會衝突）
_PARKING_POSITION = 0


def next_position(space_id: UUID, db: Session) -> int:
    """
    取得下一個可用的 position

    每次都從資料庫現況計算（不快取），以容忍被其他途徑刪除的紀錄

    參數：
        space_id: Space ID
        db: SQLAlchemy Session

    返回：
        max(position) + 1；沒有人排隊時回傳 1
    """
    current_max = EntryStore(db).max_position(space_id)
    return (current_max or 0) + 1


def renumber(space_id: UUID, db: Session) -> int:
    """
    依目前順序把 position 重寫成 1..N

    邏輯：
    - 依 position 由小到大取出所有紀錄
    - 第 i 筆設成 i（已經是 i 的不動）
    - 由小到大逐筆 flush：每次寫入的目標 position 一定是空的

    參數：
        space_id: Space ID
        db: SQLAlchemy Session

    返回：
        實際被改動的紀錄數（已經連續時為 0）
    """
    store = EntryStore(db)
    changed = 0
    for index, entry in enumerate(store.list_entries(space_id, for_update=True), start=1):
        if entry.position != index:
            store.set_position(entry, index)
            changed += 1

    if changed:
        logger.info(f"Renumbered {changed} queue entries in space {space_id}")
    return changed


def _swap_with_neighbor(user_id: str, space_id: UUID, offset: int, db: Session) -> bool:
    store = EntryStore(db)
    store.get_space(space_id)
    entry = store.get_by_user(space_id, user_id)

    neighbor = store.get_by_position(space_id, entry.position + offset)
    if neighbor is None:
        # 已經在最前 / 最後，靜默忽略
        return False

    original = entry.position
    store.set_position(entry, _PARKING_POSITION)
    store.set_position(neighbor, original)
    store.set_position(entry, original + offset)

    logger.info(
        f"Moved user {user_id} in space {space_id} from position {original} to {original + offset}"
    )
    return True


def move_up(user_id: str, space_id: UUID, db: Session) -> bool:
    """
    和前一位（position - 1）交換位置

    暫停與講者旗標都不受影響

    返回：
        True 如果有移動；已經在第一位時回傳 False

    異常：
        SpaceNotFound / QueueEntryNotFound
    """
    return _swap_with_neighbor(user_id, space_id, -1, db)


def move_down(user_id: str, space_id: UUID, db: Session) -> bool:
    """和後一位（position + 1）交換位置；已經在最後一位時回傳 False"""
    return _swap_with_neighbor(user_id, space_id, 1, db)
