from __future__ import annotations

import logging

from tabsettle.application.ports.publisher import EventPublisher, events_channel

logger = logging.getLogger("tabsettle.application.notify")


def publish_best_effort(
    publisher: EventPublisher,
    restaurant_id: str,
    event_type: str,
    message: str,
) -> None:
    """Publish after commit; a failed publish is logged and never undoes the change."""
    channel = events_channel(restaurant_id)
    try:
        publisher.publish(channel=channel, message=message)
    except Exception:
        logger.warning(
            "event_publish_failed",
            exc_info=True,
            extra={"channel": channel, "event_type": event_type},
        )
