"""
Local notification surface.

The polling engine talks to the platform notification center through this
interface. Scheduling a notification whose identifier is already present
replaces it, so emitting twice for the same report shows it once.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
import logging

from safealert.models.notification import LocalNotification

logger = logging.getLogger(__name__)

REPORT_NOTIFICATION_CATEGORY = "REPORT_NOTIFICATION"
REPORT_NOTIFICATION_ACTIONS = {
    "VIEW_REPORT": "View Report",
    "DISMISS": "Dismiss",
}


class NotificationSink(ABC):
    """Platform notification center."""

    @abstractmethod
    async def request_permission(self) -> bool:
        """
        Ask the user for permission to show notifications.

        Returns:
            True if granted
        """
        pass

    @abstractmethod
    async def schedule_local_notification(
        self,
        identifier: str,
        title: str,
        body: str,
        metadata: Optional[Dict[str, Any]] = None,
        category_identifier: Optional[str] = None
    ) -> None:
        """
        Show a notification immediately.

        Raises:
            NotificationError: If the platform refused the request
        """
        pass


class InMemoryNotificationSink(NotificationSink):
    """
    Notification center kept in process memory.

    `delivered` holds the currently shown notifications keyed by identifier;
    `history` records scheduling calls in order. Both keep only the newest
    `history_limit` entries.
    """

    HISTORY_LIMIT = 200

    def __init__(self, permission_granted: bool = True, history_limit: Optional[int] = None):
        self.permission_granted = permission_granted
        self.history_limit = history_limit or self.HISTORY_LIMIT
        self.delivered: Dict[str, LocalNotification] = {}
        self.history: List[LocalNotification] = []

    async def request_permission(self) -> bool:
        if self.permission_granted:
            logger.info("Notification permission granted")
        else:
            logger.warning("Notification permission denied")
        return self.permission_granted

    async def schedule_local_notification(
        self,
        identifier: str,
        title: str,
        body: str,
        metadata: Optional[Dict[str, Any]] = None,
        category_identifier: Optional[str] = None
    ) -> None:
        notification = LocalNotification(
            identifier=identifier,
            title=title,
            body=body,
            metadata=metadata or {},
            category_identifier=category_identifier,
        )
        self.delivered.pop(identifier, None)
        self.delivered[identifier] = notification
        while len(self.delivered) > self.history_limit:
            self.delivered.pop(next(iter(self.delivered)))
        self.history.append(notification)
        del self.history[:-self.history_limit]
        logger.info(f"Local notification {identifier}: {title} - {body}")

    def clear(self) -> None:
        self.delivered.clear()
        self.history.clear()
