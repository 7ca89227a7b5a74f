"""API stack: API Gateway HTTP API routed from the manifest triggers."""

from aws_cdk import (
    Stack,
    Duration,
    CfnOutput,
    aws_apigatewayv2 as apigw,
    aws_apigatewayv2_integrations as apigw_integrations,
    aws_lambda as lambda_,
)
from constructs import Construct
from typing import Dict, Any, List

from manifest.routing import parse_route


class ApiStack(Stack):
    """
    API infrastructure stack.

    Components:
    - API Gateway HTTP API
    - Lambda integration
    - One API route per manifest route; the root wildcard becomes $default
    - CORS configuration

    Routing between components happens inside the application, so every
    gateway route targets the same Lambda. Access control for individual
    components is the components' own business (kv-explorer uses Basic auth).
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        env_name: str,
        env_config: Dict[str, Any] = None,
        api_lambda: lambda_.IFunction,
        routes: List[str],
        **kwargs
    ):
        """
        Initialize API stack.

        Args:
            scope: CDK app
            construct_id: Stack ID
            env_name: Environment name (dev/test/prod)
            env_config: Environment-specific configuration
            api_lambda: Application Lambda function
            routes: Manifest trigger routes
            **kwargs: Additional stack properties
        """
        super().__init__(scope, construct_id, **kwargs)

        self.env_name = env_name
        self.env_config = env_config or {}
        self.api_lambda = api_lambda
        self.routes = routes

        # Create API Gateway
        self._create_api_gateway()

        # Stack outputs
        self._create_outputs()

    def gateway_paths(self) -> List[str]:
        """API Gateway route paths for the manifest routes, excluding $default."""
        paths = []
        for route in self.routes:
            pattern = parse_route(route)
            if pattern.wildcard and not pattern.prefix:
                continue
            if pattern.wildcard:
                paths.extend([pattern.prefix, pattern.prefix + "/{proxy+}"])
            else:
                paths.append(pattern.prefix)
        for path in ("/health", "/version"):
            if path not in paths:
                paths.append(path)
        return paths

    def _has_root_wildcard(self) -> bool:
        return any(
            parse_route(route).wildcard and not parse_route(route).prefix
            for route in self.routes
        )

    def _create_api_gateway(self):
        """Create API Gateway HTTP API with Lambda integration."""
        lambda_integration = apigw_integrations.HttpLambdaIntegration(
            "AppLambdaIntegration",
            self.api_lambda,
            payload_format_version=apigw.PayloadFormatVersion.VERSION_2_0,
        )

        self.http_api = apigw.HttpApi(
            self,
            "HttpApi",
            api_name=f"sentiment-analysis-{self.env_name}",
            description=f"Sentiment analysis application - {self.env_name}",
            cors_preflight=apigw.CorsPreflightOptions(
                allow_origins=["*"],
                allow_methods=[
                    apigw.CorsHttpMethod.GET,
                    apigw.CorsHttpMethod.POST,
                    apigw.CorsHttpMethod.PUT,
                    apigw.CorsHttpMethod.DELETE,
                    apigw.CorsHttpMethod.OPTIONS,
                ],
                allow_headers=["Content-Type", "Authorization"],
                max_age=Duration.hours(1),
            ),
            default_integration=lambda_integration if self._has_root_wildcard() else None,
        )

        for path in self.gateway_paths():
            methods = [apigw.HttpMethod.GET] if path in ("/health", "/version") else [apigw.HttpMethod.ANY]
            self.http_api.add_routes(
                path=path,
                methods=methods,
                integration=lambda_integration,
            )

    def _create_outputs(self):
        """Create CloudFormation outputs."""
        CfnOutput(
            self,
            "ApiEndpoint",
            value=self.http_api.url or "",
            description="API Gateway endpoint URL",
            export_name=f"sentiment-analysis-{self.env_name}-api-endpoint",
        )

        CfnOutput(
            self,
            "ApiId",
            value=self.http_api.http_api_id,
            description="API Gateway ID",
            export_name=f"sentiment-analysis-{self.env_name}-api-id",
        )
