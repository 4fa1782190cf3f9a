"""
命名服務：生成 Space slug

純計算邏輯，不涉及狀態轉換
"""
import random
import string

from sqlalchemy.orm import Session

from models import Space

# URL-safe 字元集（與 nanoid 預設相同）
SLUG_ALPHABET = string.ascii_letters + string.digits + "_-"


def generate_slug(length: int = 10) -> str:
    """
    生成隨機的 URL-safe slug

    範例：V1StGXR8_Z, 4f90d13a42

    注意：
    - 不檢查唯一性（由呼叫者負責）
    - 64^10 種可能，碰撞機率極低
    """
    return ''.join(random.choices(SLUG_ALPHABET, k=length))


def slug_exists(slug: str, db: Session) -> bool:
    return db.query(Space.id).filter(Space.slug == slug).first() is not None
