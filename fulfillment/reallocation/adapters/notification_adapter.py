"""
Notification Adapter for the Fulfillment Reallocation Engine.

Delivery itself lives in an external notification service; this module only
defines the boundary and two local implementations.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Dict, Any

from django.conf import settings
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)


class NotificationAdapterInterface(ABC):
    """
    Contract for pushing fulfillment events to the notification service.

    Implementations are called only after the originating transaction has
    committed.
    """

    @abstractmethod
    def notify(self, event_type: str, payload: Dict[str, Any]) -> None:
        """
        Deliver one event.

        Args:
            event_type: Event name (e.g. BACKORDER_ALLOCATED)
            payload: JSON-serializable event body
        """
        pass


class LoggingNotificationAdapter(NotificationAdapterInterface):
    """Default adapter: writes each event to the log and nothing else."""

    def notify(self, event_type: str, payload: Dict[str, Any]) -> None:
        logger.info(f"Notification {event_type}: {payload}")


class MockNotificationAdapter(NotificationAdapterInterface):
    """
    Recording implementation for testing.
    """

    def __init__(self):
        self.sent: List[Dict[str, Any]] = []

    def notify(self, event_type: str, payload: Dict[str, Any]) -> None:
        self.sent.append({"event_type": event_type, "payload": payload})

    def events_of_type(self, event_type: str) -> List[Dict[str, Any]]:
        return [event for event in self.sent if event["event_type"] == event_type]


def _build_configured_adapter() -> NotificationAdapterInterface:
    path = getattr(
        settings,
        'FULFILLMENT_NOTIFICATION_ADAPTER',
        'reallocation.adapters.notification_adapter.LoggingNotificationAdapter',
    )
    return import_string(path)()


notification_adapter = None


def get_notification_adapter() -> NotificationAdapterInterface:
    """
    Factory function to get the current notification adapter.

    Built lazily from the FULFILLMENT_NOTIFICATION_ADAPTER setting.
    """
    global notification_adapter
    if notification_adapter is None:
        notification_adapter = _build_configured_adapter()
    return notification_adapter


def switch_to_mock_adapter() -> MockNotificationAdapter:
    """Switch to mock adapter for testing."""
    global notification_adapter
    notification_adapter = MockNotificationAdapter()
    return notification_adapter


def switch_to_real_adapter(real_adapter: NotificationAdapterInterface):
    """
    Switch to a real notification adapter implementation.

    Args:
        real_adapter: Implementation of NotificationAdapterInterface
    """
    global notification_adapter
    notification_adapter = real_adapter
