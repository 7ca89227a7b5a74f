"""Unit tests for variable resolution and templates."""

import pytest

from manifest import VariableError, parse_manifest
from manifest.variables import (
    missing_variables,
    render_template,
    resolve_component_variables,
    resolve_variables,
    template_references,
)


class DictProvider:
    def __init__(self, values):
        self.values = values

    def get_variable(self, name):
        return self.values.get(name)


@pytest.fixture
def manifest():
    return parse_manifest({
        "manifest_version": 2,
        "application": {"name": "demo"},
        "component": {
            "explorer": {
                "source": "components.kv_explorer:create_app",
                "variables": {"credentials": "{{ user }}:{{password}}"},
            }
        },
        "variables": {
            "user": {"required": True},
            "password": {"required": True, "secret": True},
            "greeting": {"default": "hello"},
        },
    })


def test_template_references():
    assert template_references("{{ a }}-{{b}}-{{ a }}") == ["a", "b", "a"]
    assert template_references("plain") == []


def test_render_template():
    assert render_template("{{ user }}:{{ password }}", {"user": "u", "password": "p"}) == "u:p"


def test_render_template_unknown_variable():
    with pytest.raises(VariableError, match="unknown variable 'x'"):
        render_template("{{ x }}", {})


def test_resolve_uses_defaults(manifest):
    values = resolve_variables(manifest, DictProvider({"user": "admin", "password": "pw"}))

    assert values == {"user": "admin", "password": "pw", "greeting": "hello"}


def test_provider_overrides_default(manifest):
    values = resolve_variables(
        manifest, DictProvider({"user": "u", "password": "p", "greeting": "hi"})
    )

    assert values["greeting"] == "hi"


def test_resolve_lists_all_missing(manifest):
    with pytest.raises(VariableError, match="password, user"):
        resolve_variables(manifest, DictProvider({}))


def test_missing_variables(manifest):
    assert missing_variables(manifest, DictProvider({"user": "u"})) == ["password"]


def test_resolve_component_variables(manifest):
    values = resolve_variables(manifest, DictProvider({"user": "admin", "password": "s3cret"}))

    rendered = resolve_component_variables(manifest.components["explorer"], values)

    assert rendered == {"credentials": "admin:s3cret"}
