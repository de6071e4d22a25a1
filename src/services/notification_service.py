"""
Notification emitter.

Turns lifecycle events into addressed notifications. Emission is
fire-and-forget: a failing store is logged and never undoes the ticket
change that triggered it.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

from models.notification import Notification, NotificationType
from models.ticket import Ticket
from models.user import Role
from utils.logging_config import get_logger

logger = get_logger(__name__)


class NotificationService:
    """Builds notifications and hands them to a store."""

    def __init__(self, repository, clock: Optional[Callable[[], datetime]] = None):
        self.repository = repository
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def notify_user(
        self,
        user_id: Optional[str],
        kind: NotificationType,
        title: str,
        message: str,
        ticket: Optional[Ticket] = None,
    ) -> Optional[Notification]:
        if not user_id:
            return None
        return self._emit(kind, title, message, ticket, for_user=user_id)

    def notify_role(
        self,
        role: Role,
        kind: NotificationType,
        title: str,
        message: str,
        ticket: Optional[Ticket] = None,
    ) -> Optional[Notification]:
        return self._emit(kind, title, message, ticket, for_role=role)

    def _emit(self, kind, title, message, ticket, for_user=None, for_role=None):
        notification = Notification(
            id=uuid.uuid4().hex,
            type=kind,
            title=title,
            message=message,
            ticket=ticket.id if ticket else None,
            ticket_id=ticket.ticket_id if ticket else None,
            for_user=for_user,
            for_role=for_role,
            created_at=self.clock(),
        )
        try:
            self.repository.put(notification)
        except Exception as exc:
            logger.warning(
                "Notification emission failed",
                extra={
                    "notification_type": kind.value,
                    "recipient": notification.recipient_key,
                    "error": str(exc),
                },
            )
            return None
        logger.info(
            "Notification emitted",
            extra={"notification_type": kind.value, "recipient": notification.recipient_key},
        )
        return notification
