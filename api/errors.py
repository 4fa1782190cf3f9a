"""
業務異常 -> HTTP 狀態碼

呼叫端只會看到通用的錯誤訊息，顯示中的隊伍狀態維持不變，直到下一次讀取成功
"""
import logging

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError

from core.exceptions import (
    QueueEngineException,
    NotFound,
    InvalidState,
    Conflict,
    DependencyFailure,
    SpaceOwnershipRequired,
    ValidationError
)

logger = logging.getLogger(__name__)

_STATUS_CODES = (
    (NotFound, 404),
    (SpaceOwnershipRequired, 403),
    (InvalidState, 409),
    (Conflict, 409),
    (ValidationError, 422),
    (DependencyFailure, 503),
)


def to_http_exception(error: Exception) -> HTTPException:
    """
    把例外轉成 HTTPException；非預期的例外一律 500

    讀取路徑不經過 @transactional，資料庫錯誤在這裡視同 DependencyFailure
    """
    if isinstance(error, SQLAlchemyError):
        error = DependencyFailure(str(error))
    if isinstance(error, QueueEngineException):
        for exc_cls, status_code in _STATUS_CODES:
            if isinstance(error, exc_cls):
                if status_code >= 500:
                    logger.error(f"Dependency failure: {error}")
                    return HTTPException(status_code=status_code, detail="Service unavailable")
                return HTTPException(status_code=status_code, detail=str(error))

    logger.error(f"Unexpected error: {error}", exc_info=error)
    return HTTPException(status_code=500, detail="Internal error")
