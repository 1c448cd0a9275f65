"""
Post-commit notification outbox.

Events are queued on the current transaction and handed to the notification
adapter only once it commits; a rolled-back transaction sends nothing.
"""

import logging
from typing import Dict, Any

from django.db import transaction

from ..adapters.notification_adapter import get_notification_adapter

logger = logging.getLogger(__name__)


def _deliver(event_type: str, payload: Dict[str, Any]) -> None:
    try:
        get_notification_adapter().notify(event_type, payload)
    except Exception:
        # Fire-and-forget: the state change has already committed
        logger.exception(f"Notification {event_type} could not be delivered")


def notify_after_commit(event_type: str, payload: Dict[str, Any]) -> None:
    """
    Queue a notification to run after the surrounding transaction commits.

    Outside a transaction (autocommit) the callback runs immediately.
    """
    transaction.on_commit(lambda: _deliver(event_type, dict(payload)), robust=True)
