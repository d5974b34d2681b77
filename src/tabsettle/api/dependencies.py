from __future__ import annotations

from functools import lru_cache

from opentelemetry import trace

from tabsettle.api.middleware.request_id import get_request_id
from tabsettle.application.ports.publisher import EventPublisher
from tabsettle.application.ports.repositories import (
    DishOrderRepository,
    TableAccountRepository,
    TableRepository,
)
from tabsettle.application.use_cases.context import TraceContext
from tabsettle.application.use_cases.engine import AccountEngine, build_engine
from tabsettle.infrastructure.config import materiality_threshold_cents, storage_backend
from tabsettle.infrastructure.db.repositories.account_repo import (
    SqlAlchemyTableAccountRepository,
)
from tabsettle.infrastructure.db.repositories.dish_repo import SqlAlchemyDishOrderRepository
from tabsettle.infrastructure.db.repositories.table_repo import SqlAlchemyTableRepository
from tabsettle.infrastructure.memory.store import (
    InMemoryAccountStore,
    InMemoryDishOrderRepository,
    InMemoryTableAccountRepository,
    InMemoryTableRepository,
)
from tabsettle.infrastructure.messaging.redis_publisher import RedisEventPublisher


def current_trace_context() -> TraceContext:
    span_context = trace.get_current_span().get_span_context()
    trace_id = format(span_context.trace_id, "032x") if span_context.is_valid else None
    return TraceContext(trace_id=trace_id, request_id=get_request_id())


@lru_cache(maxsize=1)
def memory_store() -> InMemoryAccountStore:
    return InMemoryAccountStore()


@lru_cache(maxsize=1)
def account_engine() -> AccountEngine:
    return build_engine(materiality_threshold_cents=materiality_threshold_cents())


def table_repository() -> TableRepository:
    if storage_backend() == "memory":
        return InMemoryTableRepository(memory_store())
    return SqlAlchemyTableRepository()


def account_repository() -> TableAccountRepository:
    if storage_backend() == "memory":
        return InMemoryTableAccountRepository(memory_store())
    return SqlAlchemyTableAccountRepository()


def dish_repository() -> DishOrderRepository:
    if storage_backend() == "memory":
        return InMemoryDishOrderRepository(memory_store())
    return SqlAlchemyDishOrderRepository()


def event_publisher() -> EventPublisher:
    return RedisEventPublisher()
