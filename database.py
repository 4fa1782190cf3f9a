from sqlalchemy import create_engine, event
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from pydantic_settings import BaseSettings
from functools import lru_cache, wraps
import logging

from core.exceptions import QueueEngineException, DependencyFailure, conflict_from_integrity_error

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    database_url: str = "sqlite:///./speaker_queue.db"
    log_level: str = "INFO"
    slug_length: int = 10
    join_max_attempts: int = 3
    history_page_size: int = 10

    class Config:
        env_file = ".env"


@lru_cache()
def get_settings():
    return Settings()


settings = get_settings()


def configure_sqlite(engine):
    """
    讓 pysqlite 正確支援 SAVEPOINT 與外鍵

    pysqlite 預設會延後送出 BEGIN，導致 begin_nested() 的 SAVEPOINT
    落在 transaction 之外；這裡改成由 SQLAlchemy 自己送 BEGIN IMMEDIATE。
    SQLite 不支援 FOR UPDATE，IMMEDIATE 讓每個 transaction 一開始就拿到
    寫入鎖，併發的加入排隊會依序等待而不是讀到同一個 max(position)。
    """
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


# SQLite 需要特殊設定：connect_args={"check_same_thread": False}
# 這允許多執行緒存取同一個 SQLite 連線（FastAPI 的多執行緒環境需要）
engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False} if settings.database_url.startswith("sqlite") else {},
    pool_pre_ping=True
)
if settings.database_url.startswith("sqlite"):
    configure_sqlite(engine)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """
    FastAPI dependency：提供 Database Session

    使用 yield 確保 session 在請求結束後會被關閉
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def transactional(func):
    """
    Transaction decorator：確保資料庫操作的原子性

    使用方式：
        @transactional
        def some_business_logic(db: Session, ...):
            # 所有 DB 操作都在一個 transaction 內
            space = Space(...)
            db.add(space)
            # 不需要手動 commit，decorator 會處理

    如果函式內發生異常：
        - 自動 rollback
        - IntegrityError 轉成對應的 Conflict（例如 PositionConflict）
        - 其他 SQLAlchemyError 轉成 DependencyFailure
        - 業務異常原樣重新拋出（讓上層處理）

    注意：
        - 第一個參數必須是 db: Session
        - 不要在函式內手動 commit（decorator 會處理）
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        # 找出 db session（可能在 args 或 kwargs）
        db = None
        if args and isinstance(args[0], Session):
            db = args[0]
        elif 'db' in kwargs:
            db = kwargs['db']

        if db is None:
            raise ValueError(
                f"@transactional requires 'db: Session' as first argument, "
                f"but got args={args}, kwargs={kwargs}"
            )

        try:
            result = func(*args, **kwargs)
            db.commit()
            return result
        except QueueEngineException as e:
            logger.info(f"Transaction aborted in {func.__name__}: {e}")
            db.rollback()
            raise
        except IntegrityError as e:
            logger.warning(f"Integrity violation in {func.__name__}: {e.orig}")
            db.rollback()
            raise conflict_from_integrity_error(e) from e
        except SQLAlchemyError as e:
            logger.error(f"Transaction failed in {func.__name__}: {e}", exc_info=True)
            db.rollback()
            raise DependencyFailure(str(e)) from e
        except Exception as e:
            logger.error(f"Transaction failed in {func.__name__}: {e}", exc_info=True)
            db.rollback()
            raise

    return wrapper
