from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from tabsettle.api.error_handling import register_exception_handlers
from tabsettle.api.middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware
from tabsettle.api.routes.dishes import router as dishes_router
from tabsettle.api.routes.health import router as health_router
from tabsettle.api.routes.metrics import router as metrics_router
from tabsettle.api.routes.payments import router as payments_router
from tabsettle.api.routes.tables import router as tables_router
from tabsettle.api.ws.manager import ConnectionManager
from tabsettle.api.ws.routes import router as ws_router
from tabsettle.infrastructure.config import cors_allow_origins
from tabsettle.infrastructure.messaging.redis_ws_fanout import start_redis_ws_fanout
from tabsettle.infrastructure.observability.logging_config import configure_logging
from tabsettle.infrastructure.observability.otel import configure_otel

logger = logging.getLogger("tabsettle.api.access")

REQUEST_COUNT = Counter(
    "tabsettle_http_requests_total",
    "Total number of HTTP requests",
    ["method", "route", "status_code"],
)
REQUEST_LATENCY = Histogram(
    "tabsettle_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "route"],
)


def route_template(request: Request) -> str:
    """Label by route template so table and dish ids do not explode metric cardinality."""
    route = request.scope.get("route")
    template = getattr(route, "path", None)
    return template if isinstance(template, str) else "unmatched"


def _observe(method: str, route: str, status_code: int, duration_ms: float) -> None:
    REQUEST_COUNT.labels(method=method, route=route, status_code=str(status_code)).inc()
    REQUEST_LATENCY.labels(method=method, route=route).observe(duration_ms / 1000)


class AccessLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        path = request.url.path
        method = request.method
        try:
            response = await call_next(request)
        except Exception:
            duration_ms = (time.perf_counter() - started) * 1000
            _observe(method, route_template(request), 500, duration_ms)
            logger.exception(
                "request_error",
                extra={
                    "method": method,
                    "path": path,
                    "status_code": 500,
                    "duration_ms": round(duration_ms, 2),
                },
            )
            raise

        duration_ms = (time.perf_counter() - started) * 1000
        _observe(method, route_template(request), response.status_code, duration_ms)
        logger.info(
            "request_complete",
            extra={
                "method": method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.ws_manager = ConnectionManager()
    fanout_task = asyncio.create_task(start_redis_ws_fanout(app.state))
    try:
        yield
    finally:
        fanout_task.cancel()
        with suppress(asyncio.CancelledError):
            await fanout_task


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(title="tabsettle", version="0.1.0", lifespan=lifespan)
    register_exception_handlers(app)
    for router in (
        health_router,
        metrics_router,
        tables_router,
        dishes_router,
        payments_router,
        ws_router,
    ):
        app.include_router(router)

    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_allow_origins(),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )

    configure_otel(app)
    return app


app = create_app()
