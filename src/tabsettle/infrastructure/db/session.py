from __future__ import annotations

import logging
from functools import lru_cache

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError

from tabsettle.infrastructure.config import database_url

logger = logging.getLogger(__name__)


def _connect_args(url: str, connect_timeout: int) -> dict[str, object]:
    backend = make_url(url).get_backend_name()
    if backend == "postgresql":
        return {"connect_timeout": connect_timeout}
    if backend == "sqlite":
        # Table locks are held across threads by the request pool
        return {"check_same_thread": False}
    return {}


@lru_cache(maxsize=8)
def _build_engine(url: str, connect_timeout: int) -> Engine:
    return create_engine(
        url,
        pool_pre_ping=True,
        connect_args=_connect_args(url, connect_timeout),
    )


def get_engine(timeout_seconds: float = 1.0) -> Engine:
    connect_timeout = max(1, int(timeout_seconds))
    return _build_engine(database_url(), connect_timeout)


def ping_database(timeout_seconds: float = 1.0) -> bool:
    try:
        with get_engine(timeout_seconds).connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except (SQLAlchemyError, RuntimeError):
        logger.warning("database_ping_failed", exc_info=True)
        return False
