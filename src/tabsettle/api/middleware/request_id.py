from __future__ import annotations

import re
from contextvars import ContextVar
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

REQUEST_ID_HEADER = "X-Request-Id"
IDEMPOTENCY_KEY_HEADER = "Idempotency-Key"

_ACCEPTED_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")

request_id_context: ContextVar[str | None] = ContextVar("request_id", default=None)
idempotency_key_context: ContextVar[str | None] = ContextVar("idempotency_key", default=None)


def get_request_id() -> str | None:
    return request_id_context.get()


def get_idempotency_key() -> str | None:
    return idempotency_key_context.get()


def resolve_request_id(inbound: str | None) -> str:
    """Reuse the caller's id when it is safe to echo into logs and events."""
    if inbound and _ACCEPTED_REQUEST_ID.match(inbound):
        return inbound
    return f"req_{uuid4().hex}"


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request_token = request_id_context.set(request_id)
        idempotency_token = idempotency_key_context.set(
            request.headers.get(IDEMPOTENCY_KEY_HEADER)
        )
        request.state.request_id = request_id
        try:
            response = await call_next(request)
        finally:
            idempotency_key_context.reset(idempotency_token)
            request_id_context.reset(request_token)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
