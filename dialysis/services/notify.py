"""Push refresh events to connected ward dashboards."""
import logging
from typing import Iterable

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction
from django.utils import timezone

logger = logging.getLogger(__name__)

UPDATES_GROUP = "updates"


def _send(event: dict) -> None:
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    try:
        async_to_sync(channel_layer.group_send)(UPDATES_GROUP, event)
    except Exception:
        # a dead channel layer must not fail the write that triggered it
        logger.exception("broadcast %s failed", event.get("keys"))


def broadcast_refresh(keys: Iterable[str]) -> None:
    """Queue a ``broadcast.refresh`` event once the current transaction commits."""
    now = timezone.now()
    event = {
        "type": "broadcast.refresh",
        "version": int(now.timestamp()),
        "ts": now.isoformat(),
        "keys": list(keys)[:50],
    }
    transaction.on_commit(lambda: _send(event))
