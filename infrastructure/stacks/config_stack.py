"""Config stack: Parameter Store placeholders for manifest variables."""

from aws_cdk import (
    Stack,
    CfnOutput,
)
from constructs import Construct
from typing import Dict, List

from cdk_constructs import SecretParameter


class ConfigStack(Stack):
    """
    Configuration infrastructure stack.

    Creates one parameter per manifest variable under the parameter prefix.
    Values are placeholders until populated with
    ``sentiment-analysis push-variables``; the application treats a
    placeholder as unset, so required variables fail fast and variables with
    defaults fall back to them.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        env_name: str,
        variable_names: List[str],
        parameter_prefix: str = "/sentiment-analysis",
        **kwargs
    ):
        """
        Initialize config stack.

        Args:
            scope: CDK app
            construct_id: Stack ID
            env_name: Environment name (dev/test/prod)
            variable_names: Manifest variable names
            parameter_prefix: Parameter Store prefix read by the application
            **kwargs: Additional stack properties
        """
        super().__init__(scope, construct_id, **kwargs)

        self.env_name = env_name
        self.parameter_prefix = parameter_prefix.rstrip("/")
        self.parameters: Dict[str, SecretParameter] = {}

        for name in variable_names:
            key = name.upper()
            self.parameters[name] = SecretParameter(
                self,
                f"Variable-{name}",
                parameter_name=f"{self.parameter_prefix}/{key}",
                description=f"Manifest variable {name} ({env_name})",
            )

        CfnOutput(
            self,
            "ParameterPrefix",
            value=self.parameter_prefix,
            description="Parameter Store prefix for manifest variables",
            export_name=f"sentiment-analysis-{self.env_name}-parameter-prefix",
        )
