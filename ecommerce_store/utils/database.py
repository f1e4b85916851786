"""
Engine, session factory and declarative base for the store schema
"""
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional

from loguru import logger
from sqlalchemy import MetaData, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import get_settings
from .errors import describe_integrity_error

# Every constraint gets a predictable name so engine errors can be traced back
NAMING_CONVENTION = {
    "ix": "ix_%(table_name)s_%(column_0_N_name)s",
    "uq": "uq_%(table_name)s_%(column_0_N_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

Base = declarative_base(metadata=MetaData(naming_convention=NAMING_CONVENTION))


def _set_sqlite_pragmas(dbapi_connection: Any, connection_record: Any) -> None:
    # SQLite ignores ON DELETE actions unless foreign keys are switched on per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys = ON")
    cursor.close()


def create_database_engine(url: Optional[str] = None, echo: Optional[bool] = None) -> Engine:
    settings = get_settings()
    url = url or settings.database_url
    echo = settings.db_echo if echo is None else echo

    kwargs = {"echo": echo}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True

    engine = create_engine(url, **kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _set_sqlite_pragmas)
    return engine


def create_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(bind=bind, autocommit=False, autoflush=False)


engine = create_database_engine()
SessionLocal = create_session_factory(engine)


@contextmanager
def session_scope(session_factory: Optional[Callable[[], Session]] = None) -> Iterator[Session]:
    """
    Transactional unit of work: commit on success, roll back on any error.
    Constraint violations are re-raised as ``ConstraintViolation``.
    """
    db = (session_factory or SessionLocal)()
    try:
        yield db
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        violation = describe_integrity_error(exc, Base.metadata)
        logger.warning(f"Write rejected: {violation}")
        raise violation from exc
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def create_tables(bind: Optional[Engine] = None) -> None:
    """Create all tables registered on the declarative base"""
    from .. import models  # noqa: F401  registers the mappers on Base.metadata

    Base.metadata.create_all(bind=bind or engine)


def drop_tables(bind: Optional[Engine] = None) -> None:
    """Drop all tables registered on the declarative base"""
    from .. import models  # noqa: F401

    Base.metadata.drop_all(bind=bind or engine)
