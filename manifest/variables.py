"""Application variables and the "{{ name }}" templates that reference them."""

import logging
import re
from typing import Dict, List, Mapping, Optional, Protocol

from manifest.errors import VariableError
from manifest.models import ApplicationManifest, Component

logger = logging.getLogger(__name__)

TEMPLATE_PATTERN = re.compile(r"\{\{\s*([A-Za-z0-9_]+)\s*\}\}")


class VariableProvider(Protocol):
    """Anything that can look up a variable value by name."""

    def get_variable(self, name: str) -> Optional[str]:
        ...


def template_references(template: str) -> List[str]:
    """Variable names referenced by a template, in order of appearance."""
    return TEMPLATE_PATTERN.findall(template)


def render_template(template: str, values: Mapping[str, str]) -> str:
    """
    Substitute every "{{ name }}" placeholder.

    Raises:
        VariableError: If a referenced name has no value
    """
    def _substitute(match: re.Match) -> str:
        name = match.group(1)
        if name not in values:
            raise VariableError(f"Template references unknown variable '{name}'")
        return values[name]

    return TEMPLATE_PATTERN.sub(_substitute, template)


def _lookup(manifest: ApplicationManifest, provider: VariableProvider) -> Dict[str, Optional[str]]:
    found = {}
    for name, variable in manifest.variables.items():
        value = provider.get_variable(name)
        if value is None:
            value = variable.default
        found[name] = value
    return found


def missing_variables(manifest: ApplicationManifest, provider: VariableProvider) -> List[str]:
    """Required variables the provider has no value for."""
    found = _lookup(manifest, provider)
    return sorted(name for name, value in found.items() if value is None)


def resolve_variables(manifest: ApplicationManifest, provider: VariableProvider) -> Dict[str, str]:
    """
    Resolve every declared variable.

    Raises:
        VariableError: Listing all required variables without a value
    """
    found = _lookup(manifest, provider)
    missing = sorted(name for name, value in found.items() if value is None)
    if missing:
        raise VariableError(f"Required variables have no value: {', '.join(missing)}")

    logger.info(f"Resolved {len(found)} application variables")
    return found


def resolve_component_variables(component: Component, values: Mapping[str, str]) -> Dict[str, str]:
    """Render a component's variable templates against resolved application variables."""
    return {
        name: render_template(template, values)
        for name, template in component.variables.items()
    }
