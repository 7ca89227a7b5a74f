"""Per-component runtime context handed to component factories."""

import logging
from dataclasses import dataclass, field
from functools import cached_property
from pathlib import Path
from typing import Dict

from app.config import Config
from kv_store import KeyValueStore, StoreManager
from manifest.errors import VariableError
from manifest.hosts import OutboundHostPolicy
from manifest.models import Component
from models import Settings

logger = logging.getLogger(__name__)


@dataclass
class ComponentContext:
    """
    What a component may use at runtime.

    Attributes:
        component: The component's manifest entry
        variables: Component variables rendered from application variables
        stores: Shared store manager; access goes through open_store()
        settings: Application settings
        config: Secret/variable provider
        base_dir: Directory of the manifest, for relative paths
    """
    component: Component
    variables: Dict[str, str]
    stores: StoreManager
    settings: Settings
    config: Config
    base_dir: Path = field(default_factory=Path.cwd)

    def open_store(self, label: str = "default") -> KeyValueStore:
        """Open a key-value store granted to this component."""
        return self.stores.open(label, self.component.key_value_stores)

    def variable(self, name: str) -> str:
        try:
            return self.variables[name]
        except KeyError:
            raise VariableError(f"Component '{self.component.id}' has no variable '{name}'") from None

    @cached_property
    def outbound(self) -> OutboundHostPolicy:
        return OutboundHostPolicy(self.component.allowed_outbound_hosts)

    def http_session(self):
        """A requests session limited to the component's allowed outbound hosts."""
        return self.outbound.session()

    def resolve_path(self, relative: str) -> Path:
        return (self.base_dir / relative).resolve()
