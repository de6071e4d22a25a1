"""
Main CDK Stack for the ITFM helpdesk and duty roster service.
"""

from aws_cdk import (
    Stack,
    Tags,
    CfnOutput,
)
from constructs import Construct

from infrastructure.constructs.data_layer import DataLayerConstruct
from infrastructure.constructs.api_layer import ApiLayerConstruct
from infrastructure.config.settings import Settings


class HelpdeskStack(Stack):
    """Main stack wiring all constructs together."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        settings: Settings,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        # Global tags for cost/accounting.
        Tags.of(self).add("Project", "itfm-helpdesk")
        Tags.of(self).add("Environment", settings.environment)
        Tags.of(self).add("ManagedBy", "cdk")

        # 1) Network, relational store and notification table.
        data_construct = DataLayerConstruct(
            self,
            "DataLayer",
            environment=settings.environment,
            db_instance_class=settings.db_instance_class,
            db_allocated_storage=settings.db_allocated_storage,
        )

        # 2) API layer (single Lambda).
        api_construct = ApiLayerConstruct(
            self,
            "ApiLayer",
            environment=settings.environment,
            vpc=data_construct.vpc,
            environment_variables={
                "DB_SECRET_ARN": data_construct.db_secret.secret_arn,
                "NOTIFICATIONS_TABLE": data_construct.notifications_table.table_name,
                "SITE_TIMEZONE": settings.site_timezone,
            },
            lambda_memory_mb=settings.lambda_memory_mb,
            lambda_timeout_seconds=settings.lambda_timeout_seconds,
            jwt_issuer=settings.jwt_issuer,
            jwt_audience=settings.jwt_audience,
            bundle_dependencies=settings.bundle_dependencies,
        )

        # Permissions for the API Lambda.
        data_construct.db_secret.grant_read(api_construct.main_lambda)
        data_construct.notifications_table.grant_write_data(api_construct.main_lambda)
        data_construct.db_instance.connections.allow_default_port_from(
            api_construct.main_lambda
        )

        # Outputs to quickly find resources.
        CfnOutput(self, "ApiEndpoint", value=api_construct.api.api_endpoint)
        CfnOutput(self, "NotificationsTable", value=data_construct.notifications_table.table_name)
        CfnOutput(self, "DbSecretArn", value=data_construct.db_secret.secret_arn)
