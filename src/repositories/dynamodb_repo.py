"""DynamoDB repository for addressed notifications."""

from datetime import timedelta
from typing import Any, Dict

import boto3

from models.notification import Notification


class NotificationRepository:
    """Write notifications keyed by recipient with a TTL attribute."""

    def __init__(self, table_name: str, ttl_days: int = 30, region_name: str = None):
        self.table = boto3.resource("dynamodb", region_name=region_name).Table(table_name)
        self.ttl_days = ttl_days

    def put(self, notification: Notification) -> None:
        """Insert a notification item."""
        self.table.put_item(Item=self._to_item(notification))

    def _to_item(self, notification: Notification) -> Dict[str, Any]:
        item = notification.model_dump(mode="json", exclude_none=True)
        item["recipient"] = notification.recipient_key
        item["expires_at"] = int(
            (notification.created_at + timedelta(days=self.ttl_days)).timestamp()
        )
        return item
