#!/usr/bin/env python3
"""
CDK application for the sentiment analysis service.

Reads the application manifest from the repository root so the deployed
tables, parameters and API routes always match what the application serves.

Usage:
    cdk synth --context env=dev
    cdk deploy --context env=dev --all
    cdk destroy --context env=dev --all

Environment: dev or prod (default: dev)
"""

import os
import sys
from pathlib import Path

from aws_cdk import App, Environment, Tags

REPO_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(REPO_ROOT))

from manifest import load_manifest  # noqa: E402
from stacks import StorageStack, ConfigStack, ComputeStack, ApiStack  # noqa: E402

# Initialize CDK app
app = App()

# Get environment from context or environment variable
env_name = app.node.try_get_context("env") or os.getenv("CDK_ENV", "dev")

env_config = (app.node.try_get_context("environments") or {}).get(env_name)
if not env_config:
    raise ValueError(
        f"Environment '{env_name}' not found in cdk.json context. "
        "Available: dev, prod"
    )

account_id = os.getenv("CDK_DEFAULT_ACCOUNT") or env_config["account"]
region = os.getenv("CDK_DEFAULT_REGION") or env_config["region"]
aws_env = Environment(account=account_id, region=region)

manifest_path = os.getenv("MANIFEST_PATH", str(REPO_ROOT / "manifest.toml"))
manifest = load_manifest(manifest_path)
parameter_prefix = env_config.get("parameter_prefix", f"/sentiment-analysis/{env_name}")

print(f"Deploying {manifest.application.name} to environment: {env_name}")
print(f"AWS Account: {account_id}")
print(f"AWS Region: {region}")

# 1. Storage Stack (DynamoDB table per key-value store)
storage_stack = StorageStack(
    app,
    f"SentimentStorage-{env_name}",
    env=aws_env,
    env_name=env_name,
    env_config=env_config,
    store_labels=manifest.key_value_stores(),
    description=f"Sentiment analysis storage - {env_name}",
)

# 2. Config Stack (Parameter Store placeholders for variables)
config_stack = ConfigStack(
    app,
    f"SentimentConfig-{env_name}",
    env=aws_env,
    env_name=env_name,
    variable_names=sorted(manifest.variables),
    parameter_prefix=parameter_prefix,
    description=f"Sentiment analysis configuration - {env_name}",
)

# 3. Compute Stack (application Lambda)
compute_stack = ComputeStack(
    app,
    f"SentimentCompute-{env_name}",
    env=aws_env,
    env_name=env_name,
    env_config=env_config,
    kv_tables=storage_stack.tables,
    parameter_prefix=parameter_prefix,
    description=f"Sentiment analysis compute - {env_name}",
)
compute_stack.add_dependency(config_stack)

# 4. API Stack (HTTP API)
api_stack = ApiStack(
    app,
    f"SentimentAPI-{env_name}",
    env=aws_env,
    env_name=env_name,
    env_config=env_config,
    api_lambda=compute_stack.app_lambda,
    routes=[trigger.route for trigger in manifest.triggers],
    description=f"Sentiment analysis API - {env_name}",
)

Tags.of(app).add("Environment", env_name)
Tags.of(app).add("Project", "sentiment-analysis")
Tags.of(app).add("ManagedBy", "CDK")

app.synth()
