# vaultnote/infra/database.py

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)

# =========================
# ENGINE CONFIGURATION
# =========================


def create_db_engine(database_url: str, timeout: float = 5.0, echo: bool = False) -> Engine:
    """
    Build an engine whose every operation gives up after ``timeout`` seconds
    instead of hanging.

    PostgreSQL gets a connect timeout and a server side statement_timeout;
    SQLite gets its busy timeout, which bounds how long a writer waits for
    the database lock.
    """
    url = make_url(database_url)

    if url.get_backend_name() == "sqlite":
        return create_engine(
            url,
            connect_args={"timeout": timeout, "check_same_thread": False},
            echo=echo,
        )

    connect_args = {}
    if url.get_backend_name() == "postgresql":
        connect_args = {
            "connect_timeout": max(1, int(timeout)),
            "options": f"-c statement_timeout={int(timeout * 1000)}",
        }

    return create_engine(
        url,
        connect_args=connect_args,
        pool_pre_ping=True,  # Check connections before using them
        pool_size=5,         # Maintain 5 connections in the pool
        max_overflow=10,     # Allow 10 extra connections if needed
        pool_timeout=timeout,
        pool_recycle=3600,   # Recycle connections every hour
        echo=echo,
    )


# =========================
# SESSION CONFIGURATION
# =========================


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        bind=engine,
        autoflush=False,
        expire_on_commit=False,
    )


@contextmanager
def db_session(session_factory: sessionmaker) -> Iterator[Session]:
    """
    Context manager for one unit of work.
    Usage:
        with db_session(factory) as db:
            db.add(record)
    """
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def test_connection(engine: Engine) -> bool:
    """
    Test DB connection.
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        logger.exception("Database connection failed")
        return False
