import logging
from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from acknowledge.config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def get_engine() -> Engine:
    if settings.database_url.startswith("sqlite"):
        return create_engine(settings.database_url, pool_pre_ping=True)
    return create_engine(
        settings.database_url,
        pool_pre_ping=True,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_recycle=settings.db_pool_recycle,
    )


SessionLocal = sessionmaker(autoflush=False, autocommit=False)

_engine: Engine | None = None
_storage_failed = False


def open_session() -> Session | None:
    """Open a session on the acknowledgement store.

    Returns None once storage initialization has failed. The failure is
    logged a single time; later calls return None silently so callers can
    hand the result straight to the services, which degrade to empty results.
    """
    global _engine, _storage_failed
    if _storage_failed:
        return None
    if _engine is None:
        try:
            engine = get_engine()
            with engine.connect():
                pass
        except (SQLAlchemyError, ImportError):
            _storage_failed = True
            logger.exception("Acknowledgement storage is unavailable")
            return None
        _engine = engine
        SessionLocal.configure(bind=engine)
    return SessionLocal()


def storage_available() -> bool:
    return not _storage_failed


def reset_storage() -> None:
    global _engine, _storage_failed
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _storage_failed = False


@contextmanager
def session_scope() -> Generator[Session | None, None, None]:
    """
    Yields a session and commits/rolls back. Yields None when storage is unavailable.
    """
    s = open_session()
    if s is None:
        yield None
        return
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
