"""
Deployment settings for the helpdesk stack.

Small defaults for development; production gets a larger database and
more Lambda headroom.
"""

from dataclasses import dataclass
import os


@dataclass
class Settings:
    """Stack settings with cost-optimized defaults."""

    # Environment
    environment: str = "dev"
    aws_region: str = "eu-west-2"

    # Calendar convention passed through to the API Lambda
    site_timezone: str = "UTC"

    # Database Configuration
    db_instance_class: str = "t3.micro"
    db_allocated_storage: int = 20

    # Lambda Configuration
    lambda_memory_mb: int = 512
    lambda_timeout_seconds: int = 30

    # Notification items expire after this many days
    notification_ttl_days: int = 30

    # JWT authorizer; left empty the API is deployed without one
    jwt_issuer: str = ""
    jwt_audience: str = ""

    # Docker bundling of Lambda dependencies (disabled for synth-only runs)
    bundle_dependencies: bool = True

    @classmethod
    def from_environment(cls) -> "Settings":
        """Load settings from environment variables."""
        env = os.environ.get("ENVIRONMENT", "dev")
        common = dict(
            environment=env,
            aws_region=os.environ.get("AWS_REGION", cls.aws_region),
            site_timezone=os.environ.get("SITE_TIMEZONE", cls.site_timezone),
            jwt_issuer=os.environ.get("JWT_ISSUER", ""),
            jwt_audience=os.environ.get("JWT_AUDIENCE", ""),
            bundle_dependencies=os.environ.get("CDK_BUNDLE", "true").lower() == "true",
        )

        # Production overrides
        if env == "prod":
            return cls(
                **common,
                db_instance_class="t3.small",
                db_allocated_storage=50,
                lambda_memory_mb=1024,
                lambda_timeout_seconds=60,
            )

        return cls(**common)
