"""Reusable CDK Constructs."""

from .lambda_function import LambdaFunction
from .secret_parameter import SecretParameter

__all__ = [
    "LambdaFunction",
    "SecretParameter",
]
