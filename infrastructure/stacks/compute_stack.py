"""Compute stack: the application Lambda function."""

from aws_cdk import (
    Stack,
    Duration,
    CfnOutput,
    aws_logs as logs,
    aws_dynamodb as dynamodb,
)
from constructs import Construct
from typing import Dict, Any

from cdk_constructs import LambdaFunction
from kv_store import table_env_key


class ComputeStack(Stack):
    """
    Compute infrastructure stack.

    Components:
    - Application Lambda (FastAPI via Mangum) built from the ECR image
    - Read/write grants on every key-value store table
    - Read grant on the manifest variable parameters
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        env_name: str,
        env_config: Dict[str, Any],
        kv_tables: Dict[str, dynamodb.ITable],
        parameter_prefix: str,
        manifest_path: str = "manifest.toml",
        **kwargs
    ):
        """
        Initialize compute stack.

        Args:
            scope: CDK app
            construct_id: Stack ID
            env_name: Environment name (dev/test/prod)
            env_config: Environment-specific configuration
            kv_tables: DynamoDB table per key-value store label
            parameter_prefix: Parameter Store prefix for manifest variables
            manifest_path: Manifest path inside the image
            **kwargs: Additional stack properties
        """
        super().__init__(scope, construct_id, **kwargs)

        self.env_name = env_name
        self.env_config = env_config
        self.kv_tables = kv_tables
        self.parameter_prefix = parameter_prefix.rstrip("/")

        # Note: AWS_REGION is automatically set by Lambda runtime
        self.app_env = {
            "ENVIRONMENT": env_name,
            "KV_BACKEND": "dynamodb",
            "PARAMETER_PREFIX": self.parameter_prefix,
            "MANIFEST_PATH": manifest_path,
            "LOG_LEVEL": env_config.get("log_level", "INFO"),
        }
        for label, table in kv_tables.items():
            self.app_env[table_env_key(label)] = table.table_name

        self._create_app_lambda()
        self._grant_permissions()

        # Stack outputs
        self._create_outputs()

    def _get_log_retention(self, days: int) -> logs.RetentionDays:
        """Convert integer days to RetentionDays enum."""
        retention_map = {
            1: logs.RetentionDays.ONE_DAY,
            3: logs.RetentionDays.THREE_DAYS,
            7: logs.RetentionDays.ONE_WEEK,
            14: logs.RetentionDays.TWO_WEEKS,
            30: logs.RetentionDays.ONE_MONTH,
            90: logs.RetentionDays.THREE_MONTHS,
        }
        return retention_map.get(days, logs.RetentionDays.ONE_WEEK)

    def _create_app_lambda(self):
        """Create the application Lambda from the ECR image."""
        self.app_function = LambdaFunction(
            self,
            "AppLambda",
            repository_name=f"sentiment-analysis-{self.env_name}",
            image_tag=self.env_config.get("image_tag", "latest"),
            timeout=Duration.seconds(self.env_config["lambda_timeout_api"]),
            memory_size=self.env_config["lambda_memory_api"],
            environment=self.app_env,
            log_retention=self._get_log_retention(self.env_config["log_retention_days"]),
            description=f"Sentiment analysis application - {self.env_name}",
        )
        self.app_lambda = self.app_function.function

    def _grant_permissions(self):
        """Grant the Lambda access to its tables and parameters."""
        for table in self.kv_tables.values():
            table.grant_read_write_data(self.app_lambda)
        self.app_function.grant_parameter_store_read(self.parameter_prefix)

    def _create_outputs(self):
        """Create CloudFormation outputs."""
        CfnOutput(
            self,
            "AppLambdaArn",
            value=self.app_lambda.function_arn,
            description="Application Lambda ARN",
            export_name=f"sentiment-analysis-{self.env_name}-app-lambda-arn",
        )

        CfnOutput(
            self,
            "AppLambdaName",
            value=self.app_lambda.function_name,
            description="Application Lambda name",
            export_name=f"sentiment-analysis-{self.env_name}-app-lambda-name",
        )
