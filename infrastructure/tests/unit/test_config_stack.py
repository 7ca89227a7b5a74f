"""Unit tests for ConfigStack."""

import aws_cdk as cdk
from aws_cdk import assertions

from cdk_constructs.secret_parameter import PLACEHOLDER_VALUE
from stacks.config_stack import ConfigStack


def test_config_stack_creates_parameter_per_variable():
    app = cdk.App()

    stack = ConfigStack(
        app,
        "TestConfigStack",
        env_name="dev",
        variable_names=["kv_explorer_user", "kv_explorer_password"],
        parameter_prefix="/sentiment-analysis/dev/",
    )

    template = assertions.Template.from_stack(stack)

    template.resource_count_is("AWS::SSM::Parameter", 2)
    template.has_resource_properties(
        "AWS::SSM::Parameter",
        {
            "Name": "/sentiment-analysis/dev/KV_EXPLORER_PASSWORD",
            "Type": "String",
            "Value": PLACEHOLDER_VALUE,
        },
    )


def test_placeholder_is_treated_as_unset():
    """The deployed placeholder must be one the application ignores."""
    from app.config import PLACEHOLDER_VALUES

    assert PLACEHOLDER_VALUE in PLACEHOLDER_VALUES
