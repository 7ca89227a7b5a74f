"""Storage stack: one DynamoDB table per key-value store label."""

from aws_cdk import (
    Stack,
    RemovalPolicy,
    CfnOutput,
    aws_dynamodb as dynamodb,
)
from constructs import Construct
from typing import Dict, Any, List


class StorageStack(Stack):
    """
    Storage infrastructure stack.

    Components:
    - DynamoDB table for each key-value store label in the manifest
      (partition key "key", binary attribute "value")
    - Point-in-time recovery and retention (prod only)
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        env_name: str,
        store_labels: List[str],
        env_config: Dict[str, Any] = None,
        **kwargs
    ):
        """
        Initialize storage stack.

        Args:
            scope: CDK app
            construct_id: Stack ID
            env_name: Environment name (dev/test/prod)
            store_labels: Key-value store labels granted to any component
            env_config: Environment-specific configuration
            **kwargs: Additional stack properties
        """
        super().__init__(scope, construct_id, **kwargs)

        self.env_name = env_name
        self.env_config = env_config or {}
        self.tables: Dict[str, dynamodb.Table] = {}

        for label in store_labels:
            self._create_kv_table(label)

        # Stack outputs
        self._create_outputs()

    def _create_kv_table(self, label: str):
        """Create the DynamoDB table backing one store label."""
        prod = self.env_name == "prod"
        self.tables[label] = dynamodb.Table(
            self,
            f"KvTable-{label}",
            table_name=f"sentiment-analysis-kv-{label}-{self.env_name}",
            partition_key=dynamodb.Attribute(
                name="key",
                type=dynamodb.AttributeType.STRING,
            ),
            billing_mode=dynamodb.BillingMode.PAY_PER_REQUEST,  # On-demand pricing
            point_in_time_recovery=prod,
            removal_policy=RemovalPolicy.RETAIN if prod else RemovalPolicy.DESTROY,
        )

    def _create_outputs(self):
        """Create CloudFormation outputs."""
        for label, table in self.tables.items():
            CfnOutput(
                self,
                f"KvTableName-{label}",
                value=table.table_name,
                description=f"DynamoDB table for key-value store '{label}'",
                export_name=f"sentiment-analysis-{self.env_name}-kv-{label}",
            )
