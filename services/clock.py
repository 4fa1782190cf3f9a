"""
時間工具

所有時間一律使用 UTC aware datetime。SQLite 讀回來的 DateTime 會遺失 tzinfo，
計算時間差前要先經過 as_utc()。
"""
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def elapsed_seconds(start: datetime, end: Optional[datetime] = None) -> int:
    """start 到 end（預設現在）經過的秒數，無條件捨去，不會是負數"""
    end = as_utc(end) if end is not None else utcnow()
    delta = end - as_utc(start)
    return max(int(delta.total_seconds() // 1), 0)
