"""
API layer construct: shared Lambda + HTTP API routes.

A single Lambda keeps warm caches and reduces cold start costs; the
in-process router in handlers.main dispatches every route.
"""

from pathlib import Path
from typing import Dict, Optional

from aws_cdk import (
    BundlingOptions,
    Duration,
    aws_ec2 as ec2,
    aws_lambda as _lambda,
    aws_apigatewayv2 as apigw,
    aws_apigatewayv2_authorizers as authorizers,
    aws_apigatewayv2_integrations as integrations,
    aws_logs as logs,
)
from constructs import Construct

SRC_DIR = str(Path(__file__).resolve().parents[2] / "src")

# Routes reachable without a token.
PUBLIC_ROUTES = [
    (apigw.HttpMethod.GET, "/health"),
    (apigw.HttpMethod.GET, "/duty-roster/shift-types"),
]

PROTECTED_ROUTES = [
    (apigw.HttpMethod.GET, "/tickets"),
    (apigw.HttpMethod.POST, "/tickets"),
    (apigw.HttpMethod.GET, "/tickets/stats"),
    (apigw.HttpMethod.GET, "/tickets/{id}"),
    (apigw.HttpMethod.PUT, "/tickets/{id}/assign"),
    (apigw.HttpMethod.PUT, "/tickets/{id}/status"),
    (apigw.HttpMethod.PUT, "/tickets/{id}/resolve"),
    (apigw.HttpMethod.POST, "/tickets/{id}/logs"),
    (apigw.HttpMethod.POST, "/tickets/{id}/reassign-request"),
    (apigw.HttpMethod.PUT, "/tickets/{id}/reassign-request"),
    (apigw.HttpMethod.GET, "/duty-roster"),
    (apigw.HttpMethod.POST, "/duty-roster"),
    (apigw.HttpMethod.GET, "/duty-roster/current"),
    (apigw.HttpMethod.GET, "/duty-roster/week/{date}"),
    (apigw.HttpMethod.GET, "/duty-roster/{id}"),
    (apigw.HttpMethod.PUT, "/duty-roster/{id}"),
    (apigw.HttpMethod.DELETE, "/duty-roster/{id}"),
    (apigw.HttpMethod.PATCH, "/duty-roster/{id}/publish"),
    (apigw.HttpMethod.PATCH, "/duty-roster/{id}/archive"),
    (apigw.HttpMethod.POST, "/duty-roster/{id}/clone"),
    (apigw.HttpMethod.POST, "/duty-roster/{id}/engineer"),
    (apigw.HttpMethod.DELETE, "/duty-roster/{id}/engineer/{ref}"),
    (apigw.HttpMethod.PATCH, "/duty-roster/{id}/engineer/{ref}/shift"),
    (apigw.HttpMethod.GET, "/users/engineers/availability"),
    (apigw.HttpMethod.GET, "/users/workload"),
]


class ApiLayerConstruct(Construct):
    """Expose helpdesk and roster endpoints via HTTP API."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        environment: str,
        vpc: ec2.IVpc,
        environment_variables: Dict[str, str],
        lambda_memory_mb: int = 512,
        lambda_timeout_seconds: int = 30,
        jwt_issuer: Optional[str] = None,
        jwt_audience: Optional[str] = None,
        bundle_dependencies: bool = True,
    ) -> None:
        super().__init__(scope, construct_id)

        if bundle_dependencies:
            # Installs sqlalchemy, psycopg2-binary and friends next to the code
            code = _lambda.Code.from_asset(
                SRC_DIR,
                bundling=BundlingOptions(
                    image=_lambda.Runtime.PYTHON_3_12.bundling_image,
                    command=[
                        "bash", "-c",
                        "pip install -r requirements-lambda.txt -t /asset-output && "
                        "cp -r . /asset-output"
                    ],
                ),
            )
        else:
            code = _lambda.Code.from_asset(SRC_DIR)

        self.main_lambda = _lambda.Function(
            self,
            "ApiHandler",
            runtime=_lambda.Runtime.PYTHON_3_12,
            handler="handlers.main.lambda_handler",
            code=code,
            memory_size=lambda_memory_mb,
            timeout=Duration.seconds(lambda_timeout_seconds),
            architecture=_lambda.Architecture.X86_64,
            vpc=vpc,
            vpc_subnets=ec2.SubnetSelection(subnet_type=ec2.SubnetType.PRIVATE_ISOLATED),
            environment={"ENVIRONMENT": environment, **environment_variables},
            log_retention=logs.RetentionDays.ONE_WEEK,
        )

        authorizer = None
        if jwt_issuer and jwt_audience:
            authorizer = authorizers.HttpJwtAuthorizer(
                "JwtAuthorizer", jwt_issuer, jwt_audience=[jwt_audience]
            )

        self.api = apigw.HttpApi(
            self,
            "HttpApi",
            api_name=f"itfm-helpdesk-api-{environment}",
            cors_preflight=apigw.CorsPreflightOptions(
                allow_origins=["*"],
                allow_methods=[apigw.CorsHttpMethod.ANY],
                allow_headers=["Authorization", "Content-Type"],
            ),
        )

        integration = integrations.HttpLambdaIntegration(
            "LambdaIntegration", self.main_lambda
        )

        for method, path in PUBLIC_ROUTES:
            self.api.add_routes(path=path, methods=[method], integration=integration)

        for method, path in PROTECTED_ROUTES:
            self.api.add_routes(
                path=path,
                methods=[method],
                integration=integration,
                authorizer=authorizer,
            )
