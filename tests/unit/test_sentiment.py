"""Unit tests for sentiment classification and caching."""

from unittest.mock import MagicMock

import boto3
import pytest
from moto import mock_aws

from kv_store import DynamoDBStore, MemoryStore, StoreError
from sentiment import (
    MAX_CACHE_KEY_BYTES,
    MAX_TOKENS,
    Sentiment,
    analyze,
    build_prompt,
    is_cacheable,
    parse_inference_output,
)


class TestSentimentParse:

    @pytest.mark.parametrize("text,expected", [
        ("positive", Sentiment.POSITIVE),
        (" Negative\n", Sentiment.NEGATIVE),
        ("NEUTRAL", Sentiment.NEUTRAL),
    ])
    def test_valid(self, text, expected):
        assert Sentiment.parse(text) == expected

    @pytest.mark.parametrize("text", ["", "happy", "positive!"])
    def test_invalid(self, text):
        with pytest.raises(ValueError, match="Invalid sentiment"):
            Sentiment.parse(text)

    def test_str(self):
        assert str(Sentiment.POSITIVE) == "positive"


class TestParseInferenceOutput:

    @pytest.mark.parametrize("output,expected", [
        ("positive", Sentiment.POSITIVE),
        (" negative", Sentiment.NEGATIVE),
        ("Neutral.", Sentiment.NEUTRAL),
        ("\n\npositive\nUser: next", Sentiment.POSITIVE),
        ("Bot: negative", Sentiment.NEGATIVE),
        ('"neutral"', Sentiment.NEUTRAL),
    ])
    def test_lenient(self, output, expected):
        assert parse_inference_output(output) == expected

    @pytest.mark.parametrize("output", ["", "   ", "I think it is positive", "mixed"])
    def test_unparseable(self, output):
        assert parse_inference_output(output) is None


def test_build_prompt_ends_with_sentence():
    prompt = build_prompt("I love {braces}")

    assert prompt.endswith("User: I love {braces}\nBot:")
    assert "Bot: neutral" in prompt


def test_max_tokens_is_small():
    assert MAX_TOKENS == 8


class TestAnalyze:

    def test_cache_miss_runs_inference_and_caches(self):
        store = MemoryStore()
        infer_fn = MagicMock(return_value=" positive")

        outcome = analyze("  I am so happy today  ", store, infer_fn)

        assert outcome.sentiment == "positive"
        assert outcome.cached is False
        assert store.get("I am so happy today") == b"positive"
        prompt = infer_fn.call_args[0][0]
        assert prompt.endswith("User: I am so happy today\nBot:")

    def test_cache_hit_skips_inference(self):
        store = MemoryStore()
        store.set("I am so sad today", b"negative")
        infer_fn = MagicMock()

        outcome = analyze("I am so sad today", store, infer_fn)

        assert outcome.sentiment == "negative"
        assert outcome.cached is True
        infer_fn.assert_not_called()

    def test_unparseable_output_is_not_cached(self):
        store = MemoryStore()

        outcome = analyze("Hmm", store, MagicMock(return_value="I cannot say"))

        assert outcome.sentiment == ""
        assert store.get("Hmm") is None

    def test_corrupt_cache_value_triggers_inference(self):
        store = MemoryStore()
        store.set("Hi", b"\xff\xfe")
        infer_fn = MagicMock(return_value="neutral")

        outcome = analyze("Hi", store, infer_fn)

        assert outcome.sentiment == "neutral"
        infer_fn.assert_called_once()
        assert store.get("Hi") == b"neutral"

    def test_cache_write_failure_still_returns_sentiment(self):
        store = MagicMock()
        store.get.return_value = None
        store.set.side_effect = StoreError("table is read-only")

        outcome = analyze("Great", store, MagicMock(return_value="positive"))

        assert outcome.sentiment == "positive"

    def test_cache_read_failure_propagates(self):
        store = MagicMock()
        store.get.side_effect = StoreError("unreachable")

        with pytest.raises(StoreError):
            analyze("Great", store, MagicMock())


@pytest.fixture
def dynamodb_store(monkeypatch):
    """DynamoDB-backed store on a mocked table."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    with mock_aws():
        dynamodb = boto3.resource("dynamodb", region_name="us-east-1")
        dynamodb.create_table(
            TableName="test-kv-default",
            KeySchema=[{"AttributeName": "key", "KeyType": "HASH"}],
            AttributeDefinitions=[{"AttributeName": "key", "AttributeType": "S"}],
            BillingMode="PAY_PER_REQUEST",
        )
        yield DynamoDBStore("test-kv-default", region_name="us-east-1")


class TestUncacheableSentences:

    def test_is_cacheable(self):
        assert is_cacheable("Hi")
        assert is_cacheable("x" * MAX_CACHE_KEY_BYTES)
        assert not is_cacheable("")
        assert not is_cacheable("x" * (MAX_CACHE_KEY_BYTES + 1))
        # Multi-byte characters count by their encoded size
        assert not is_cacheable("é" * (MAX_CACHE_KEY_BYTES // 2 + 1))

    def test_blank_sentence_runs_inference_on_dynamodb(self, dynamodb_store):
        infer_fn = MagicMock(return_value="neutral")

        outcome = analyze("   ", dynamodb_store, infer_fn)

        assert outcome.sentiment == "neutral"
        assert outcome.cached is False
        infer_fn.assert_called_once()
        assert dynamodb_store.get_keys() == []

    def test_oversized_sentence_skips_the_cache(self, dynamodb_store):
        sentence = "so happy " * 400
        infer_fn = MagicMock(return_value="positive")

        outcome = analyze(sentence, dynamodb_store, infer_fn)

        assert outcome.sentiment == "positive"
        assert dynamodb_store.get_keys() == []

    def test_uncacheable_sentence_never_touches_store(self):
        store = MagicMock()

        outcome = analyze("", store, MagicMock(return_value="negative"))

        assert outcome.sentiment == "negative"
        store.get.assert_not_called()
        store.set.assert_not_called()
