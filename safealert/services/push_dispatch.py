"""
Push dispatch for the approval fan-out.

FcmPushDispatcher sends through Firebase Cloud Messaging.
LoggingPushDispatcher only records and logs what would be sent, for
development setups without push credentials.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional
import asyncio
import logging

from firebase_admin import messaging

from safealert.core.errors import NotificationError

logger = logging.getLogger(__name__)


class PushDispatcher(ABC):
    """Delivers one push notification to one device token."""

    @abstractmethod
    async def send(self, token: str, title: str, body: str, data: Optional[Dict[str, str]] = None) -> None:
        """
        Raises:
            NotificationError: If delivery was rejected
        """
        pass


class FcmPushDispatcher(PushDispatcher):
    """Firebase Cloud Messaging delivery."""

    async def send(self, token: str, title: str, body: str, data: Optional[Dict[str, str]] = None) -> None:
        message = messaging.Message(
            notification=messaging.Notification(title=title, body=body),
            token=token,
            data=data or {},
        )

        try:
            message_id = await asyncio.to_thread(messaging.send, message)
        except messaging.UnregisteredError as e:
            # Device uninstalled the app or rotated its token
            raise NotificationError(f"Push token no longer registered: {token[:20]}...") from e
        except Exception as e:
            raise NotificationError(f"FCM send failed: {e}") from e

        logger.info(f"Push sent to {token[:20]}... (message {message_id})")


class LoggingPushDispatcher(PushDispatcher):
    """Records pushes instead of sending them, keeping the newest `sent_limit`."""

    SENT_LIMIT = 200

    def __init__(self, sent_limit: Optional[int] = None):
        self.sent_limit = sent_limit or self.SENT_LIMIT
        self.sent: List[Dict] = []

    async def send(self, token: str, title: str, body: str, data: Optional[Dict[str, str]] = None) -> None:
        self.sent.append({"token": token, "title": title, "body": body, "data": dict(data or {})})
        del self.sent[:-self.sent_limit]
        logger.info(f"Would send push to token {token[:20]}...: {title}")
