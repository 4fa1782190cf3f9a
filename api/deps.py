"""
API 共用 dependency

驗證不在這個服務的範圍內：使用者 ID 由前端（已驗證過的 gateway）
透過 X-User-Id header 明確傳入，每個操作都拿到明確的 user_id。
"""
from fastapi import Header, HTTPException


def get_current_user_id(x_user_id: str = Header(..., alias="X-User-Id")) -> str:
    user_id = x_user_id.strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="Missing user id")
    return user_id
