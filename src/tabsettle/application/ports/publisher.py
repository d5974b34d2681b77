from __future__ import annotations

from typing import Protocol

EVENTS_CHANNEL_PREFIX = "events"
EVENTS_CHANNEL_PATTERN = f"{EVENTS_CHANNEL_PREFIX}:*"


def events_channel(restaurant_id: str) -> str:
    return f"{EVENTS_CHANNEL_PREFIX}:{restaurant_id}"


def restaurant_of_channel(channel: str) -> str | None:
    prefix, separator, restaurant_id = channel.partition(":")
    if prefix != EVENTS_CHANNEL_PREFIX or not separator or not restaurant_id:
        return None
    return restaurant_id


class EventPublisher(Protocol):
    """Fire-and-forget sink for serialized event envelopes."""

    def publish(self, channel: str, message: str) -> None: ...
