"""
Sentiment classification of a sentence with a key-value cache.

The model is prompted with a few labelled examples and asked for a single
word. Parsed labels are cached by sentence so repeated sentences never reach
the model twice.
"""

import logging
import string
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from kv_store import KeyValueStore, StoreError

logger = logging.getLogger(__name__)

# Tokens generated per classification; one label word fits easily
MAX_TOKENS = 8

# DynamoDB partition keys must be 1 to 2048 bytes
MAX_CACHE_KEY_BYTES = 2048

SYSTEM_PROMPT = (
    "You are a bot that generates sentiment analysis responses. "
    "Respond with a single positive, negative, or neutral."
)

PROMPT = """\
Follow the pattern of the following examples:

User: Hi, my name is Bob
Bot: neutral

User: I am so happy today
Bot: positive

User: I am so sad today
Bot: negative

User: {SENTENCE}
Bot:"""


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, text: str) -> "Sentiment":
        """
        Parse a label, ignoring surrounding whitespace and case.

        Raises:
            ValueError: If the text is not one of the three labels
        """
        try:
            return cls(text.strip().lower())
        except ValueError:
            raise ValueError(f"Invalid sentiment: {text!r}") from None


@dataclass
class AnalysisOutcome:
    sentiment: str  # empty when the model output could not be parsed
    cached: bool = False


def build_prompt(sentence: str) -> str:
    return PROMPT.replace("{SENTENCE}", sentence)


def parse_inference_output(text: str) -> Optional[Sentiment]:
    """
    Extract a sentiment from raw model output.

    Uses the first non-empty line, dropping an optional "Bot:" prefix and
    trailing punctuation. Returns None when nothing parses.
    """
    line = next((line.strip() for line in text.splitlines() if line.strip()), "")
    if line.lower().startswith("bot:"):
        line = line[len("bot:"):]
    line = line.strip().strip(string.punctuation + "\"'").strip()

    try:
        return Sentiment.parse(line)
    except ValueError:
        return None


def is_cacheable(sentence: str) -> bool:
    """True if the trimmed sentence is usable as a key on every backend."""
    return 0 < len(sentence.encode("utf-8")) <= MAX_CACHE_KEY_BYTES


def analyze(sentence: str, store: KeyValueStore, infer_fn: Callable[[str], str]) -> AnalysisOutcome:
    """
    Classify a sentence, consulting the cache first.

    Args:
        sentence: Input text (surrounding whitespace is ignored)
        store: Cache keyed by the trimmed sentence
        infer_fn: Callable taking a prompt and returning the model's text

    Returns:
        AnalysisOutcome with the label ("" if the model output was unusable)

    Raises:
        StoreError: If reading the cache fails
        llm.InferenceError: If the model call fails
    """
    sentence = sentence.strip()
    logger.info(f"Performing sentiment analysis on: {sentence}")

    use_cache = is_cacheable(sentence)
    if not use_cache:
        logger.info("Sentence cannot be a store key, skipping the cache")

    cached = store.get(sentence) if use_cache else None
    if cached is not None:
        try:
            sentiment = Sentiment.parse(cached.decode("utf-8"))
            logger.info("Found sentence in KV store, returning cached sentiment")
            return AnalysisOutcome(sentiment=sentiment.value, cached=True)
        except (UnicodeDecodeError, ValueError):
            logger.warning(f"Ignoring unreadable cached value for: {sentence}")

    logger.info("Sentence not found in KV store, running inference")
    output = infer_fn(build_prompt(sentence))
    logger.info(f"Inference result: {output!r}")

    sentiment = parse_inference_output(output)
    if sentiment is None:
        logger.warning(f"Model output is not a sentiment: {output!r}")
        return AnalysisOutcome(sentiment="")

    if not use_cache:
        return AnalysisOutcome(sentiment=sentiment.value)

    try:
        store.set(sentence, sentiment.value.encode("utf-8"))
        logger.info("Cached sentiment in KV store")
    except StoreError as e:
        logger.warning(f"Failed to cache sentiment: {e}")

    return AnalysisOutcome(sentiment=sentiment.value)
