"""
Application manifest package.

This package provides:
- Pydantic models for components, triggers and variables
- TOML loading with cross-reference validation
- Route table, variable templates and outbound host policy
- Remote artifact fetching with digest verification
"""

from manifest.errors import ManifestError, RouteConflictError, VariableError
from manifest.loader import load_manifest, parse_manifest
from manifest.models import (
    ApplicationManifest,
    Component,
    HttpTrigger,
    RemoteSource,
    Variable,
)
from manifest.routing import RouteTable, parse_route

__all__ = [
    "ManifestError",
    "RouteConflictError",
    "VariableError",
    "load_manifest",
    "parse_manifest",
    "ApplicationManifest",
    "Component",
    "HttpTrigger",
    "RemoteSource",
    "Variable",
    "RouteTable",
    "parse_route",
]
