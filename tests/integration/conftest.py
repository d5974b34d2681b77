from __future__ import annotations

import sys
from pathlib import Path
from typing import Iterator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

import tabsettle.infrastructure.db.models.participant  # noqa: F401
import tabsettle.infrastructure.db.models.sitting  # noqa: F401
import tabsettle.infrastructure.db.models.table  # noqa: F401
from tabsettle.api import dependencies
from tabsettle.infrastructure.db.models.restaurant import Base


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def memory_backend(monkeypatch) -> Iterator[None]:
    monkeypatch.setenv("STORAGE_BACKEND", "memory")
    dependencies.memory_store.cache_clear()
    dependencies.account_engine.cache_clear()
    yield
    dependencies.memory_store.cache_clear()
    dependencies.account_engine.cache_clear()
