"""Parameter Store placeholder for a manifest variable."""

from aws_cdk import (
    aws_iam as iam,
    aws_ssm as ssm,
)
from constructs import Construct
from typing import Optional

# The application reads this value as "unset"
PLACEHOLDER_VALUE = "PLACEHOLDER_TO_BE_POPULATED"


class SecretParameter(Construct):
    """
    Standard-tier String parameter holding a placeholder value.

    CloudFormation cannot create SecureString parameters, so the stack only
    reserves the name; ``sentiment-analysis push-variables`` overwrites it
    with the real value (as SecureString for secret variables).
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        parameter_name: str,
        description: Optional[str] = None,
        **kwargs
    ):
        super().__init__(scope, construct_id)

        self.parameter = ssm.StringParameter(
            self,
            "Parameter",
            parameter_name=parameter_name,
            description=description or f"Manifest variable: {parameter_name}",
            string_value=PLACEHOLDER_VALUE,
            tier=ssm.ParameterTier.STANDARD,
            **kwargs
        )

    @property
    def parameter_name(self) -> str:
        return self.parameter.parameter_name

    def grant_read(self, grantee: iam.IGrantable) -> iam.Grant:
        return self.parameter.grant_read(grantee)
