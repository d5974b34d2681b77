from __future__ import annotations

from typing import Any


class ValidationError(Exception):
    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details = details


class IdempotencyReplayMismatchError(Exception):
    pass
