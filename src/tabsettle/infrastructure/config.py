from __future__ import annotations

import os

from tabsettle.application.use_cases.engine import DEFAULT_MATERIALITY_THRESHOLD_CENTS

STORAGE_BACKENDS = ("sql", "memory")
OPEN_CORS_ENVIRONMENTS = frozenset({"dev", "test"})
DEFAULT_SERVICE_NAME = "tabsettle"


def _required(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"{name} is not set")
    return value


def database_url() -> str:
    return _required("DATABASE_URL")


def redis_url() -> str:
    return _required("REDIS_URL")


def redis_configured() -> bool:
    return bool(os.getenv("REDIS_URL"))


def storage_backend() -> str:
    value = os.getenv("STORAGE_BACKEND", "sql").strip().lower()
    if value not in STORAGE_BACKENDS:
        raise RuntimeError(f"STORAGE_BACKEND must be one of {', '.join(STORAGE_BACKENDS)}")
    return value


def default_currency() -> str:
    value = os.getenv("DEFAULT_CURRENCY", "USD").strip().upper()
    if len(value) != 3 or not value.isalpha():
        raise RuntimeError("DEFAULT_CURRENCY must be a 3-letter currency code")
    return value


def materiality_threshold_cents() -> int:
    raw_value = os.getenv("SPLIT_MATERIALITY_THRESHOLD_CENTS")
    if raw_value is None or not raw_value.strip():
        return DEFAULT_MATERIALITY_THRESHOLD_CENTS
    try:
        value = int(raw_value)
    except ValueError as exc:
        raise RuntimeError("SPLIT_MATERIALITY_THRESHOLD_CENTS must be an integer") from exc
    if value < 0:
        raise RuntimeError("SPLIT_MATERIALITY_THRESHOLD_CENTS must be >= 0")
    return value


def app_env() -> str:
    return os.getenv("APP_ENV", "dev").strip().lower()


def cors_allow_origins() -> list[str]:
    if app_env() in OPEN_CORS_ENVIRONMENTS:
        return ["*"]

    # Staging/prod: an explicit allowlist is mandatory
    raw_value = os.getenv("CORS_ALLOW_ORIGINS", "")
    origins = [origin.strip() for origin in raw_value.split(",") if origin.strip()]
    if not origins:
        raise RuntimeError("CORS_ALLOW_ORIGINS must be set outside dev/test")
    return origins


def otel_service_name() -> str:
    return os.getenv("OTEL_SERVICE_NAME", DEFAULT_SERVICE_NAME)


def otel_exporter_endpoint() -> str | None:
    return os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT") or None


def log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").strip().upper()
