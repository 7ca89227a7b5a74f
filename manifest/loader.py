"""
Load and validate an application manifest.

The manifest is TOML:

    manifest_version = 2

    [application]
    name = "sentiment-analysis"

    [[trigger.http]]
    route = "/api/..."
    component = "sentiment-analysis"

    [component.sentiment-analysis]
    source = "components.sentiment_analysis:create_app"
    key_value_stores = ["default"]

    [variables]
    kv_explorer_user = { required = true }
"""

import logging
import tomllib
from pathlib import Path
from typing import Any, Dict, Union

from pydantic import ValidationError

from manifest.errors import ManifestError
from manifest.hosts import parse_host_pattern
from manifest.models import (
    COMPONENT_ID_PATTERN,
    VARIABLE_NAME_PATTERN,
    ApplicationManifest,
)
from manifest.routing import RouteTable
from manifest.variables import template_references

logger = logging.getLogger(__name__)

SUPPORTED_TRIGGERS = {"http"}


def load_manifest(path: Union[str, Path]) -> ApplicationManifest:
    """
    Read and validate a manifest file.

    Args:
        path: Path to the TOML manifest

    Returns:
        Validated ApplicationManifest (relative paths resolve against its directory)

    Raises:
        ManifestError: If the file is unreadable, not TOML, or invalid
    """
    path = Path(path)
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except OSError as e:
        raise ManifestError(f"Cannot read manifest {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ManifestError(f"Invalid TOML in manifest {path}: {e}") from e

    try:
        manifest = parse_manifest(data, base_dir=path.resolve().parent)
    except ManifestError as e:
        raise type(e)(f"{path}: {e}") from e

    logger.info(
        f"Loaded manifest {path}: application={manifest.application.name}, "
        f"components={len(manifest.components)}, triggers={len(manifest.triggers)}"
    )
    return manifest


def parse_manifest(data: Dict[str, Any], base_dir: Union[str, Path] = ".") -> ApplicationManifest:
    """
    Validate manifest data already parsed from TOML.

    Raises:
        ManifestError: On schema errors or broken cross-references
    """
    triggers = data.get("trigger", {})
    unsupported = sorted(set(triggers) - SUPPORTED_TRIGGERS)
    if unsupported:
        raise ManifestError(f"Unsupported trigger types: {', '.join(unsupported)}")

    try:
        manifest = ApplicationManifest(
            manifest_version=data.get("manifest_version", 0),
            application=data.get("application", {}),
            triggers=triggers.get("http", []),
            components=data.get("component", {}),
            variables=data.get("variables", {}),
            base_dir=str(base_dir),
        )
    except ValidationError as e:
        raise ManifestError(f"Invalid manifest: {e}") from e

    _check_names(manifest)
    _check_triggers(manifest)
    _check_component_variables(manifest)
    _check_outbound_hosts(manifest)

    return manifest


def _check_names(manifest: ApplicationManifest):
    for component_id in manifest.components:
        if not COMPONENT_ID_PATTERN.match(component_id):
            raise ManifestError(f"Invalid component id: {component_id!r}")

    for name in manifest.variables:
        if not VARIABLE_NAME_PATTERN.match(name):
            raise ManifestError(f"Invalid variable name: {name!r}")


def _check_triggers(manifest: ApplicationManifest):
    for trigger in manifest.triggers:
        if trigger.component not in manifest.components:
            raise ManifestError(
                f"Trigger for route {trigger.route!r} references unknown component '{trigger.component}'"
            )
    # Parses every route and rejects duplicates
    RouteTable(manifest.triggers)


def _check_component_variables(manifest: ApplicationManifest):
    for component in manifest.components.values():
        for name, template in component.variables.items():
            if not VARIABLE_NAME_PATTERN.match(name):
                raise ManifestError(f"Invalid variable name {name!r} in component '{component.id}'")
            for reference in template_references(template):
                if reference not in manifest.variables:
                    raise ManifestError(
                        f"Component '{component.id}' variable '{name}' references "
                        f"undeclared variable '{reference}'"
                    )


def _check_outbound_hosts(manifest: ApplicationManifest):
    for component in manifest.components.values():
        for pattern in component.allowed_outbound_hosts:
            parse_host_pattern(pattern)
