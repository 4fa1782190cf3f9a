"""
自定義異常類別

集中管理所有業務邏輯異常，方便 API 層統一處理

分類：
- NotFound：引用的 Space / QueueEntry 不存在
- InvalidState：目前狀態不允許此操作（例如重複啟用 Space）
- Conflict：違反唯一性（重複 position、重複排隊、重複 slug）
- DependencyFailure：資料庫無法連線或回傳非預期錯誤
"""


class QueueEngineException(Exception):
    """所有排隊引擎異常的基類"""
    pass


# ============ NotFound ============

class NotFound(QueueEngineException):
    """引用的資源不存在"""
    pass


class SpaceNotFound(NotFound):
    """Space 不存在"""
    def __init__(self, space_id):
        self.space_id = space_id
        super().__init__(f"Space {space_id} not found")


class QueueEntryNotFound(NotFound):
    """排隊紀錄不存在（或不屬於該 Space）"""
    def __init__(self, entry_ref):
        self.entry_ref = entry_ref
        super().__init__(f"Queue entry {entry_ref} not found")


# ============ InvalidState ============

class InvalidState(QueueEngineException):
    """非法的狀態轉換"""
    pass


class SpaceAlreadyActive(InvalidState):
    """Space 已經是啟用狀態"""
    def __init__(self, space_id):
        self.space_id = space_id
        super().__init__(f"Space {space_id} is already active")


class SpaceNotActive(InvalidState):
    """Space 未啟用（不能排隊、不能換講者、不能停用）"""
    def __init__(self, space_id):
        self.space_id = space_id
        super().__init__(f"Space {space_id} is not active")


class NotCurrentSpeaker(InvalidState):
    """排隊紀錄不是目前講者（不能結束它的發言）"""
    def __init__(self, entry_id):
        self.entry_id = entry_id
        super().__init__(f"Queue entry {entry_id} is not the current speaker")


# ============ Conflict ============

class Conflict(QueueEngineException):
    """違反唯一性約束"""
    pass


class PositionConflict(Conflict):
    """同一個 Space 內出現重複 position（通常是併發加入）"""
    pass


class DuplicateQueueEntry(Conflict):
    """同一個使用者在同一個 Space 重複排隊"""
    pass


class DuplicateSlug(Conflict):
    """Space slug 重複"""
    pass


# ============ 其他 ============

class DependencyFailure(QueueEngineException):
    """資料庫無法連線或回傳非預期錯誤"""
    pass


class SpaceOwnershipRequired(QueueEngineException):
    """只有 Space 擁有者可以執行此操作"""
    def __init__(self, space_id, user_id):
        self.space_id = space_id
        self.user_id = user_id
        super().__init__(f"User {user_id} does not own space {space_id}")


class ValidationError(QueueEngineException):
    """輸入資料不合法"""
    pass


# 約束名稱（PostgreSQL）與欄位組合（SQLite）都要能辨識
_CONFLICT_MARKERS = (
    (("uq_queue_entries_space_position", "queue_entries.space_id, queue_entries.position"), PositionConflict),
    (("uq_queue_entries_space_user", "queue_entries.space_id, queue_entries.user_id"), DuplicateQueueEntry),
    (("uq_spaces_slug", "spaces.slug"), DuplicateSlug),
)


def conflict_from_integrity_error(error) -> Conflict:
    """
    把 IntegrityError 轉成對應的 Conflict 子類別

    參數：
        error: sqlalchemy.exc.IntegrityError

    返回：
        Conflict 實例（無法辨識時回傳通用 Conflict）
    """
    message = str(getattr(error, "orig", error))
    for markers, conflict_cls in _CONFLICT_MARKERS:
        if any(marker in message for marker in markers):
            return conflict_cls(message)
    return Conflict(message)
