"""Unit tests for ApiStack."""

import aws_cdk as cdk
from aws_cdk import assertions, aws_lambda as lambda_

from stacks.api_stack import ApiStack

ROUTES = ["/api/...", "/...", "/internal/kv-explorer/...", "/exact"]


def create_test_api_stack(app, routes=ROUTES):
    lambda_stack = cdk.Stack(app, "MockLambdaStack")
    function = lambda_.Function(
        lambda_stack,
        "MockFunction",
        runtime=lambda_.Runtime.PYTHON_3_12,
        handler="index.handler",
        code=lambda_.Code.from_inline("def handler(event, context): pass"),
    )
    return ApiStack(
        app,
        "TestApiStack",
        env_name="dev",
        api_lambda=function,
        routes=routes,
    )


def test_gateway_paths():
    app = cdk.App()
    stack = create_test_api_stack(app)

    assert stack.gateway_paths() == [
        "/api",
        "/api/{proxy+}",
        "/internal/kv-explorer",
        "/internal/kv-explorer/{proxy+}",
        "/exact",
        "/health",
        "/version",
    ]


def test_api_stack_creates_routes():
    app = cdk.App()
    stack = create_test_api_stack(app)

    template = assertions.Template.from_stack(stack)

    template.resource_count_is("AWS::ApiGatewayV2::Api", 1)
    for route_key in (
        "ANY /api/{proxy+}",
        "ANY /internal/kv-explorer",
        "ANY /exact",
        "GET /health",
        "$default",
    ):
        template.has_resource_properties("AWS::ApiGatewayV2::Route", {"RouteKey": route_key})


def test_api_stack_without_root_wildcard_has_no_default_route():
    app = cdk.App()
    stack = create_test_api_stack(app, routes=["/api/..."])

    template = assertions.Template.from_stack(stack)

    routes = template.find_resources("AWS::ApiGatewayV2::Route")
    keys = {r["Properties"]["RouteKey"] for r in routes.values()}
    assert "$default" not in keys
    assert "ANY /api" in keys


def test_api_stack_outputs():
    app = cdk.App()
    stack = create_test_api_stack(app)

    template = assertions.Template.from_stack(stack)
    template.has_output("ApiEndpoint", {})
    template.has_output("ApiId", {})
