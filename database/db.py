# database/db.py
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base, Session

from core.config import get_settings
from core.logger import get_logger

logger = get_logger(__name__)

Base = declarative_base()


def now_utc() -> datetime:
    """统一使用 UTC 时间落库。"""
    return datetime.now(timezone.utc)


class DatabaseManager:
    """
    Database connection manager (engine + session factory).
    """
    _engine: Optional[Engine] = None
    _SessionLocal: Optional[sessionmaker] = None

    @classmethod
    def initialize(cls, url: Optional[str] = None) -> None:
        if cls._engine:
            return

        settings = get_settings()
        db_url = url or settings.DATABASE_URL
        connect_args = {}
        if db_url.startswith("sqlite"):
            # SQLite 需要 check_same_thread=False（run_in_threadpool 会跨线程）
            connect_args = {"check_same_thread": False}
            db_path = db_url.split(":///", 1)[-1]
            if db_path and db_path != ":memory:":
                Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        try:
            cls._engine = create_engine(
                db_url,
                echo=settings.ECHO_SQL,
                future=True,
                pool_pre_ping=True,
                connect_args=connect_args,
            )
            if db_url.startswith("sqlite"):
                event.listen(cls._engine, "connect", _enable_sqlite_foreign_keys)
            cls._SessionLocal = sessionmaker(
                bind=cls._engine,
                autoflush=False,
                autocommit=False,
                future=True,
                expire_on_commit=False,
            )
            logger.info("Database engine initialized", url=cls._engine.url.render_as_string(hide_password=True))
        except Exception:
            logger.error("Database engine initialization failed", exc_info=True)
            cls._engine = None
            cls._SessionLocal = None
            raise

    @classmethod
    def get_engine(cls) -> Engine:
        if cls._engine is None:
            cls.initialize()
        return cls._engine

    @classmethod
    def create_all(cls) -> None:
        # models must be imported so every table registers on Base.metadata
        import database.models  # noqa: F401
        Base.metadata.create_all(bind=cls.get_engine())

    @classmethod
    def dispose(cls) -> None:
        if cls._engine is not None:
            cls._engine.dispose()
        cls._engine = None
        cls._SessionLocal = None

    @classmethod
    @contextmanager
    def get_session(cls) -> Iterator[Session]:
        if cls._SessionLocal is None:
            cls.initialize()
        db = cls._SessionLocal()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_session():
    """with get_session() as db: db.execute(...); db.add(...);"""
    return DatabaseManager.get_session()


def init_db() -> None:
    DatabaseManager.initialize()
    DatabaseManager.create_all()


def get_db_session() -> Iterator[Session]:
    """FastAPI 依赖"""
    with DatabaseManager.get_session() as db:
        yield db
