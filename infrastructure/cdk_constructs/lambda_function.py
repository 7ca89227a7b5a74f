"""Container-image Lambda function pulled from an ECR repository."""

from aws_cdk import (
    Duration,
    Stack,
    aws_ecr as ecr,
    aws_iam as iam,
    aws_lambda as lambda_,
    aws_logs as logs,
)
from constructs import Construct
from typing import Dict, Optional


class LambdaFunction(Construct):
    """
    Lambda function running the application image.

    The repository is looked up by name, so the image can be pushed by CI
    before or after the stack deploys.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        repository_name: str,
        timeout: Duration,
        memory_size: int,
        image_tag: str = "latest",
        environment: Optional[Dict[str, str]] = None,
        log_retention: logs.RetentionDays = logs.RetentionDays.ONE_WEEK,
        description: Optional[str] = None,
        **kwargs
    ):
        super().__init__(scope, construct_id)

        self.repository = ecr.Repository.from_repository_name(self, "Repository", repository_name)

        self.function = lambda_.DockerImageFunction(
            self,
            "Function",
            code=lambda_.DockerImageCode.from_ecr(repository=self.repository, tag_or_digest=image_tag),
            timeout=timeout,
            memory_size=memory_size,
            environment=environment or {},
            description=description,
            log_retention=log_retention,
            **kwargs
        )

    def grant_parameter_store_read(self, parameter_prefix: str):
        """Allow reading every parameter directly under a prefix."""
        stack = Stack.of(self)
        self.function.add_to_role_policy(
            iam.PolicyStatement(
                actions=["ssm:GetParameter", "ssm:GetParameters", "ssm:GetParametersByPath"],
                resources=[
                    f"arn:aws:ssm:{stack.region}:{stack.account}:parameter{parameter_prefix}",
                    f"arn:aws:ssm:{stack.region}:{stack.account}:parameter{parameter_prefix}/*",
                ],
            )
        )
