"""Unit tests for the command line tool."""

import hashlib
from pathlib import Path
from unittest.mock import patch

import boto3
import pytest
import requests
from moto import mock_aws

import cli

MANIFEST = """
manifest_version = 2

[application]
name = "cli-app"
version = "2.0.0"

[[trigger.http]]
route = "/..."
component = "ui"

[[trigger.http]]
route = "/api/..."
component = "api"

[component.ui]
source = "components.fileserver:create_app"
files = ["assets"]
[component.ui.build]
command = "echo built > built.txt"

[component.api]
source = "components.sentiment_analysis:create_app"
ai_models = ["claude-haiku-4-5"]

[variables]
api_token = { required = true, secret = true }
greeting = { default = "hello" }
"""


@pytest.fixture
def manifest_path(tmp_path):
    path = tmp_path / "manifest.toml"
    path.write_text(MANIFEST)
    return path


def run(manifest_path, *args) -> int:
    return cli.main(["-f", str(manifest_path), "--local", *args])


class TestValidate:

    def test_valid(self, manifest_path, monkeypatch, capsys):
        monkeypatch.setenv("API_TOKEN", "t")

        assert run(manifest_path, "validate") == 0
        assert "cli-app 2.0.0" in capsys.readouterr().out

    def test_missing_variable(self, manifest_path, monkeypatch, capsys):
        monkeypatch.delenv("API_TOKEN", raising=False)

        assert run(manifest_path, "validate") == 1
        assert "api_token" in capsys.readouterr().out

    def test_invalid_manifest(self, tmp_path, capsys):
        path = tmp_path / "manifest.toml"
        path.write_text("manifest_version = 1\n[application]\nname = 'x'\n")

        assert run(path, "validate") == 1
        assert "manifest_version" in capsys.readouterr().out


def test_routes_in_match_order(manifest_path, capsys):
    assert run(manifest_path, "routes") == 0

    lines = capsys.readouterr().out.splitlines()
    assert lines[0].startswith("/api/...")
    assert lines[1].startswith("/...")


def test_variables_hide_secrets(manifest_path, monkeypatch, capsys):
    monkeypatch.setenv("API_TOKEN", "super-secret-token")
    monkeypatch.delenv("GREETING", raising=False)

    assert run(manifest_path, "variables") == 0

    out = capsys.readouterr().out
    assert "super-secret-token" not in out
    assert "api_token [required] set (secret)" in out
    assert "greeting [default] = hello" in out


class TestBuild:

    def test_runs_build_commands(self, manifest_path, tmp_path):
        assert run(manifest_path, "build") == 0
        assert (tmp_path / "built.txt").read_text().strip() == "built"

    def test_component_filter(self, manifest_path, tmp_path):
        assert run(manifest_path, "build", "-c", "api") == 0
        assert not (tmp_path / "built.txt").exists()

    def test_failure_returns_exit_code(self, tmp_path):
        path = tmp_path / "manifest.toml"
        path.write_text(MANIFEST.replace("echo built > built.txt", "exit 3"))

        assert run(path, "build") == 3


def test_fetch_without_remote_components(manifest_path, capsys):
    assert run(manifest_path, "fetch") == 0
    assert "No remote components" in capsys.readouterr().out


def test_fetch_remote_component(tmp_path):
    content = b"artifact"
    digest = "sha256:" + hashlib.sha256(content).hexdigest()
    path = tmp_path / "manifest.toml"
    path.write_text(
        MANIFEST.replace(
            'source = "components.sentiment_analysis:create_app"',
            f'source = {{ url = "https://example.com/api.whl", digest = "{digest}" }}',
        )
    )
    cache_dir = tmp_path / "cache"

    def fake_fetch(source, directory):
        target = Path(directory) / source.hexdigest
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
        return target

    with patch("cli.fetch_artifact", side_effect=fake_fetch) as mock_fetch:
        assert run(path, "fetch", "--cache-dir", str(cache_dir)) == 0

    mock_fetch.assert_called_once()
    assert (cache_dir / digest.split(":")[1]).exists()


def test_fetch_network_failure_reports_error(tmp_path, capsys):
    digest = "sha256:" + hashlib.sha256(b"artifact").hexdigest()
    path = tmp_path / "manifest.toml"
    path.write_text(
        MANIFEST.replace(
            'source = "components.sentiment_analysis:create_app"',
            f'source = {{ url = "https://example.com/api.whl", digest = "{digest}" }}',
        )
    )

    with patch("cli.fetch_artifact", side_effect=requests.ConnectionError("connection refused")):
        assert run(path, "fetch", "--cache-dir", str(tmp_path / "cache")) == 1

    out = capsys.readouterr().out
    assert "❌ api" in out
    assert "connection refused" in out


class TestPushVariables:

    @pytest.fixture
    def env_file(self, tmp_path):
        path = tmp_path / ".env.dev"
        path.write_text("API_TOKEN=tok-123\nGREETING=hi\n")
        return path

    def test_dry_run(self, manifest_path, env_file, capsys):
        assert run(manifest_path, "push-variables", "--env-file", str(env_file), "--dry-run") == 0

        out = capsys.readouterr().out
        assert "/sentiment-analysis/API_TOKEN = ***" in out
        assert "/sentiment-analysis/GREETING = hi" in out
        assert "tok-123" not in out

    def test_missing_env_file(self, manifest_path, tmp_path):
        assert run(manifest_path, "push-variables", "--env-file", str(tmp_path / "nope")) == 1

    def test_uploads_to_parameter_store(self, manifest_path, env_file, monkeypatch):
        monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
        monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
        monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")

        with mock_aws():
            code = run(
                manifest_path, "push-variables", "--env-file", str(env_file), "--prefix", "/app/dev/"
            )
            ssm = boto3.client("ssm")
            token = ssm.get_parameter(Name="/app/dev/API_TOKEN", WithDecryption=True)["Parameter"]
            greeting = ssm.get_parameter(Name="/app/dev/GREETING")["Parameter"]

        assert code == 0
        assert token["Type"] == "SecureString"
        assert token["Value"] == "tok-123"
        assert greeting["Type"] == "String"
        assert greeting["Value"] == "hi"


@pytest.mark.parametrize("name,secret,expected", [
    ("kv_explorer_password", False, True),
    ("api_token", False, True),
    ("greeting", True, True),
    ("greeting", False, False),
])
def test_is_sensitive(name, secret, expected):
    assert cli.is_sensitive(name, secret) is expected


def test_serve_runs_uvicorn(manifest_path, monkeypatch):
    monkeypatch.setenv("MANIFEST_PATH", "unused.toml")
    with patch("uvicorn.run") as mock_run:
        assert run(manifest_path, "serve", "--port", "8080") == 0

    mock_run.assert_called_once_with(
        "main:create_app", factory=True, host="127.0.0.1", port=8080, reload=False
    )
    assert cli.os.environ["MANIFEST_PATH"] == str(manifest_path)
