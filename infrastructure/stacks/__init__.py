"""CDK stacks for the sentiment analysis application."""

from .storage_stack import StorageStack
from .config_stack import ConfigStack
from .compute_stack import ComputeStack
from .api_stack import ApiStack

__all__ = [
    "StorageStack",
    "ConfigStack",
    "ComputeStack",
    "ApiStack",
]
