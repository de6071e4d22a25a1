"""Lightweight health check handler."""

import os
import json
from datetime import datetime, timezone


def lambda_handler(event, context):
    """Return a simple 200 response to verify the service is alive."""
    return {
        "statusCode": 200,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(
            {
                "status": "ok",
                "service": "itfm-helpdesk",
                "environment": os.environ.get("ENVIRONMENT", "dev"),
                "site_timezone": os.environ.get("SITE_TIMEZONE", "UTC"),
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        ),
    }
