"""Unit tests for version information."""

from unittest.mock import patch

import pytest

import version


@pytest.fixture(autouse=True)
def clear_version_cache():
    version.get_version_info.cache_clear()
    yield
    version.get_version_info.cache_clear()


def test_build_time_values(monkeypatch):
    monkeypatch.setenv("GIT_SHA", "abc1234")
    monkeypatch.setenv("GIT_BRANCH", "main")
    monkeypatch.setenv("BUILD_TIMESTAMP", "2024-01-01T00:00:00Z")
    monkeypatch.setenv("APP_VERSION", "1.0.0")

    info = version.get_version_info()

    assert info["git_sha"] == "abc1234"
    assert info["git_branch"] == "main"
    assert info["build_timestamp"] == "2024-01-01T00:00:00Z"
    assert info["version"] == "1.0.0"


def test_git_unavailable(monkeypatch):
    monkeypatch.delenv("GIT_SHA", raising=False)
    monkeypatch.delenv("GIT_BRANCH", raising=False)
    monkeypatch.delenv("BUILD_TIMESTAMP", raising=False)

    with patch("version._run_git", return_value=None):
        info = version.get_version_info()

    assert info["git_sha"] == "unknown"
    assert info["git_branch"] == "unknown"
    assert info["build_timestamp"].endswith("Z")


def test_manifest_version_used_without_override(monkeypatch):
    monkeypatch.delenv("APP_VERSION", raising=False)

    assert version.get_version_info("2.3.4")["version"] == "2.3.4"
    assert version.get_version_info()["version"] == "0.0.0"


@pytest.mark.parametrize("env,expected", [
    ({"AWS_LAMBDA_FUNCTION_NAME": "fn"}, "lambda"),
    ({"AWS_EXECUTION_ENV": "AWS_ECS_FARGATE"}, "aws"),
    ({"CI": "true"}, "ci"),
    ({}, "local"),
])
def test_detect_environment(monkeypatch, env, expected):
    for key in ("AWS_LAMBDA_FUNCTION_NAME", "AWS_EXECUTION_ENV", "GITHUB_ACTIONS", "CI"):
        monkeypatch.delenv(key, raising=False)
    for key, value in env.items():
        monkeypatch.setenv(key, value)

    assert version.detect_environment() == expected


def test_run_git_missing_binary():
    with patch("version.subprocess.run", side_effect=FileNotFoundError("git")):
        assert version._run_git(["status"]) is None
