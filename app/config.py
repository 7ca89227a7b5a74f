"""
Variable and secret lookup for the application.

Values live in AWS Systems Manager Parameter Store under one prefix
(``{prefix}/{NAME}``). Locally, or when a parameter is absent, the
environment variable of the same name is used instead.
"""

import os
import logging
from typing import Optional, Dict, Iterable
import boto3
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

DEFAULT_PARAMETER_PREFIX = "/sentiment-analysis"

# Values written by infrastructure before an operator fills them in
PLACEHOLDER_VALUES = {"PLACEHOLDER_TO_BE_POPULATED", "WILL_BE_SET_BY_CDK"}

LLM_API_KEYS = ("ANTHROPIC_API_KEY", "OPENAI_API_KEY", "LANGSMITH_API_KEY")


class ConfigError(Exception):
    """Raised when a required key has no value."""
    pass


def _usable(value: Optional[str]) -> Optional[str]:
    if value is None or value in PLACEHOLDER_VALUES:
        return None
    return value


class Config:
    """
    Parameter Store lookups with an environment fallback.

    Resolution order for a key:
    1. Values already resolved by this instance
    2. Parameter Store ``{prefix}/{key}`` (AWS only)
    3. Environment variable ``key``
    4. The caller's default

    Placeholders left by infrastructure are treated as missing at every step.

    Usage:
        config = Config()
        config.preload()  # one round trip for the whole prefix
        user = config.get_variable("kv_explorer_user")
    """

    def __init__(self, parameter_prefix: Optional[str] = None, use_local: Optional[bool] = None):
        """
        Args:
            parameter_prefix: Parameter Store prefix (default: PARAMETER_PREFIX
                env var, then /sentiment-analysis)
            use_local: Skip Parameter Store entirely. If None, local mode is
                chosen when AWS_REGION is unset.
        """
        self.parameter_prefix = (
            parameter_prefix or os.getenv("PARAMETER_PREFIX") or DEFAULT_PARAMETER_PREFIX
        ).rstrip("/")
        self.use_local = os.getenv("AWS_REGION") is None if use_local is None else use_local
        self._resolved: Dict[str, str] = {}
        self._preloaded: Optional[Dict[str, str]] = None

        self.ssm_client = None
        if not self.use_local:
            try:
                self.ssm_client = boto3.client("ssm")
            except (BotoCoreError, ValueError) as e:
                logger.warning(f"No SSM client, using environment variables only: {e}")
                self.use_local = True

    def get(self, key: str, default: Optional[str] = None, required: bool = False) -> Optional[str]:
        """
        Resolve a key.

        Raises:
            ConfigError: If required and no source (or default) has a value
        """
        if key in self._resolved:
            return self._resolved[key]

        value = _usable(self._from_parameter_store(key))
        if value is None:
            value = _usable(os.getenv(key))
        if value is None:
            value = default

        if value is None:
            if required:
                raise ConfigError(f"Required configuration key '{key}' not found")
            return None

        self._resolved[key] = value
        return value

    def get_variable(self, name: str) -> Optional[str]:
        """Manifest variable lookup: "kv_explorer_user" reads KV_EXPLORER_USER."""
        return self.get(name.upper())

    def preload(self) -> int:
        """
        Fetch every parameter under the prefix in one paginated call.

        Later lookups for keys not found here skip Parameter Store.
        Returns the number of parameters loaded.
        """
        if self.use_local or self.ssm_client is None:
            return 0

        found = {}
        paginator = self.ssm_client.get_paginator("get_parameters_by_path")
        try:
            for page in paginator.paginate(
                Path=self.parameter_prefix + "/",
                Recursive=False,
                WithDecryption=True,
            ):
                for parameter in page.get("Parameters", []):
                    key = parameter["Name"].rsplit("/", 1)[-1]
                    found[key] = parameter["Value"]
        except (BotoCoreError, ClientError) as e:
            logger.warning(f"Parameter Store preload failed for {self.parameter_prefix}: {e}")
            return 0

        self._preloaded = found
        logger.info(f"Preloaded {len(found)} parameters from {self.parameter_prefix}")
        return len(found)

    def _from_parameter_store(self, key: str) -> Optional[str]:
        if self.use_local or self.ssm_client is None:
            return None
        if self._preloaded is not None:
            return self._preloaded.get(key)

        name = f"{self.parameter_prefix}/{key}"
        try:
            response = self.ssm_client.get_parameter(Name=name, WithDecryption=True)
        except ClientError as e:
            if e.response["Error"]["Code"] != "ParameterNotFound":
                logger.warning(f"Failed to read {name} from Parameter Store: {e}")
            return None
        except BotoCoreError as e:
            logger.warning(f"Failed to read {name} from Parameter Store: {e}")
            return None
        return response["Parameter"]["Value"]

    def get_llm_api_keys(self, keys: Iterable[str] = LLM_API_KEYS) -> Dict[str, Optional[str]]:
        """Model provider and tracing API keys (values may be None)."""
        return {key: self.get(key) for key in keys}

    def clear_cache(self):
        """Forget resolved and preloaded values."""
        self._resolved.clear()
        self._preloaded = None
        logger.info("Configuration cache cleared")

