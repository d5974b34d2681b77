from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from redis import asyncio as redis_asyncio

from tabsettle.application.ports.publisher import EVENTS_CHANNEL_PATTERN, restaurant_of_channel
from tabsettle.infrastructure.cache.redis_client import open_async_client
from tabsettle.infrastructure.config import redis_configured

logger = logging.getLogger(__name__)


def _decode_value(value: bytes | str | None) -> str | None:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


def _table_id_of(payload: str) -> str | None:
    try:
        envelope = json.loads(payload)
    except ValueError:
        return None
    if not isinstance(envelope, dict):
        return None
    body = envelope.get("payload")
    if not isinstance(body, dict):
        return None
    table_id = body.get("tableId")
    return str(table_id) if table_id is not None else None


async def dispatch_message(app_state: Any, message: dict[str, Any]) -> bool:
    channel = _decode_value(message.get("channel"))
    payload = _decode_value(message.get("data"))
    if not channel or not payload:
        return False

    restaurant_id = restaurant_of_channel(channel)
    if restaurant_id is None:
        logger.warning("redis_fanout_invalid_channel", extra={"channel": channel})
        return False

    await app_state.ws_manager.broadcast(
        restaurant_id=restaurant_id,
        message_json_str=payload,
        table_id=_table_id_of(payload),
    )
    return True


async def start_redis_ws_fanout(app_state: Any) -> None:
    if not redis_configured():
        logger.warning("redis_fanout_not_started", extra={"reason": "REDIS_URL missing"})
        return

    backoff_seconds = 1.0
    while True:
        client: redis_asyncio.Redis | None = None
        pubsub: redis_asyncio.client.PubSub | None = None
        try:
            client = open_async_client()
            pubsub = client.pubsub()
            await pubsub.psubscribe(EVENTS_CHANNEL_PATTERN)
            logger.info("redis_fanout_subscribed", extra={"pattern": EVENTS_CHANNEL_PATTERN})
            backoff_seconds = 1.0

            while True:
                message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
                if message is None:
                    await asyncio.sleep(0.05)
                    continue
                await dispatch_message(app_state, message)
        except asyncio.CancelledError:
            logger.info("redis_fanout_cancelled")
            raise
        except Exception:
            logger.exception(
                "redis_fanout_error",
                extra={"backoff_seconds": backoff_seconds},
            )
            await asyncio.sleep(backoff_seconds)
            backoff_seconds = min(backoff_seconds * 2, 5.0)
        finally:
            if pubsub is not None:
                await pubsub.aclose()
            if client is not None:
                await client.aclose()
