"""
Environment-specific configuration settings.

One site timezone drives every "today" and "now" computation so roster
dates and shift windows are compared on the same calendar.
"""

from dataclasses import dataclass
import os


@dataclass
class Settings:
    """Application settings with local-friendly defaults."""

    # Environment
    environment: str = "dev"
    aws_region: str = "eu-west-2"

    # Storage
    database_url: str = "sqlite:///itfm_helpdesk.db"
    # RDS credentials secret; used when DATABASE_URL is not set
    db_secret_arn: str = ""
    notifications_table: str = "itfm-notifications"
    notification_ttl_days: int = 30

    # Calendar convention for rosters and shift windows
    site_timezone: str = "UTC"

    # Ticket codes look like TKT-0001
    ticket_id_prefix: str = "TKT"
    ticket_id_width: int = 4

    # Optimistic locking retry budget per mutation
    max_write_retries: int = 3

    # Defaults used when pre-populating a roster from registered engineers
    default_location: str = "Numaligarh"

    log_level: str = "INFO"

    @classmethod
    def from_environment(cls) -> "Settings":
        """Load settings from environment variables."""
        env = os.environ.get("ENVIRONMENT", "dev")
        secret_arn = os.environ.get("DB_SECRET_ARN", "")
        overrides = dict(
            environment=env,
            aws_region=os.environ.get("AWS_REGION", cls.aws_region),
            database_url=os.environ.get(
                "DATABASE_URL", "" if secret_arn else cls.database_url
            ),
            db_secret_arn=secret_arn,
            notifications_table=os.environ.get(
                "NOTIFICATIONS_TABLE", cls.notifications_table
            ),
            site_timezone=os.environ.get("SITE_TIMEZONE", cls.site_timezone),
            log_level=os.environ.get("LOG_LEVEL", cls.log_level),
        )

        # Production overrides
        if env == "prod":
            overrides["max_write_retries"] = 5

        return cls(**overrides)
