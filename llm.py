import os
import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from langchain_anthropic import ChatAnthropic
from langchain_openai import ChatOpenAI
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from langsmith import traceable

# Setup logging
logger = logging.getLogger(__name__)

# Default models for each provider
DEFAULT_MODELS = {
    "anthropic": "claude-haiku-4-5",
    "openai": "gpt-4o-mini",
}

# Default provider
DEFAULT_PROVIDER = "anthropic"


class InferenceError(Exception):
    """Raised when the model provider call fails."""
    pass


class ModelAccessDenied(InferenceError):
    """Raised when a component uses a model it was not granted."""
    pass


@dataclass
class InferencingParams:
    """Generation parameters passed to the provider."""
    max_tokens: int = 100
    temperature: float = 0.0


@dataclass
class InferencingResult:
    """Generated text plus token usage."""
    text: str
    prompt_tokens: int = 0
    generated_tokens: int = 0


def resolve_provider(model: str) -> str:
    """
    Determine the provider for a model name.

    Raises:
        InferenceError: If the model name belongs to no known provider
    """
    name = model.lower()
    if name.startswith("claude"):
        return "anthropic"
    if name.startswith("gpt") or (name.startswith("o") and name[1:2].isdigit()):
        return "openai"
    raise InferenceError(f"Unknown model provider for '{model}'")


def ensure_api_keys(config) -> None:
    """Export provider API keys from config into the environment for the SDK clients."""
    for key, value in config.get_llm_api_keys().items():
        if value and not os.getenv(key):
            os.environ[key] = value


def _chat_model(provider: str, model: str, params: InferencingParams) -> BaseChatModel:
    """Build a LangChain chat model (tracks tokens/cost)."""
    if provider == "openai":
        return ChatOpenAI(model=model, max_tokens=params.max_tokens, temperature=params.temperature)
    return ChatAnthropic(model=model, max_tokens=params.max_tokens, temperature=params.temperature)


def _content_text(content) -> str:
    # Anthropic may return a list of content blocks
    if isinstance(content, str):
        return content
    parts = []
    for block in content:
        if isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
        elif isinstance(block, str):
            parts.append(block)
    return "".join(parts)


@traceable(name="infer", run_type="llm")
def infer(
    model: str,
    prompt: str,
    params: Optional[InferencingParams] = None,
    allowed_models: Optional[Iterable[str]] = None,
    system: Optional[str] = None,
) -> InferencingResult:
    """
    Run a prompt through a hosted chat model.

    Args:
        model: Model name (e.g., "claude-haiku-4-5")
        prompt: User prompt text
        params: Generation parameters (defaults to InferencingParams())
        allowed_models: The calling component's ai_models grant; None skips the check
        system: Optional system prompt

    Returns:
        InferencingResult with the generated text and token usage

    Raises:
        ModelAccessDenied: If model is not in allowed_models
        InferenceError: If the provider call fails
    """
    if allowed_models is not None and model not in set(allowed_models):
        raise ModelAccessDenied(f"Model '{model}' is not granted to this component")

    params = params or InferencingParams()
    provider = resolve_provider(model)

    messages = []
    if system:
        messages.append(SystemMessage(content=system))
    messages.append(HumanMessage(content=prompt))

    try:
        chat = _chat_model(provider, model, params)
        response = chat.invoke(messages)
    except Exception as e:
        logger.error(f"Inference failed: provider={provider}, model={model}, error={e}")
        raise InferenceError(f"Inference with '{model}' failed: {e}") from e

    usage = getattr(response, "usage_metadata", None) or {}
    result = InferencingResult(
        text=_content_text(response.content),
        prompt_tokens=usage.get("input_tokens", 0),
        generated_tokens=usage.get("output_tokens", 0),
    )
    logger.debug(f"Inference result: model={model}, tokens={result.generated_tokens}")
    return result
