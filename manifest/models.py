"""Pydantic models for the application manifest."""

import re
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator


COMPONENT_ID_PATTERN = re.compile(r"^[a-z][a-z0-9_-]*$")
VARIABLE_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")
DIGEST_PATTERN = re.compile(r"^sha256:[0-9a-f]{64}$")


class ApplicationInfo(BaseModel):
    """The [application] table."""
    name: str = Field(..., min_length=1)
    version: str = "0.0.0"
    authors: List[str] = Field(default_factory=list)
    description: Optional[str] = None


class HttpTrigger(BaseModel):
    """One [[trigger.http]] entry binding a route to a component."""
    route: str
    component: str


class BuildConfig(BaseModel):
    """Build command and the file globs that invalidate it."""
    command: str = ""
    watch: List[str] = Field(default_factory=list)
    workdir: Optional[str] = None


class FileMount(BaseModel):
    """Directory on disk exposed to a component at a path."""
    source: str
    destination: str = "/"

    @field_validator("destination")
    @classmethod
    def _destination_is_absolute(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError(f"file mount destination must start with '/': {value!r}")
        return value


class RemoteSource(BaseModel):
    """Prebuilt component artifact pinned by content digest."""
    url: str
    digest: str

    @field_validator("url")
    @classmethod
    def _url_is_http(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"remote source url must be http(s): {value!r}")
        return value

    @field_validator("digest")
    @classmethod
    def _digest_is_sha256(cls, value: str) -> str:
        if not DIGEST_PATTERN.match(value):
            raise ValueError(f"digest must look like 'sha256:<64 hex chars>': {value!r}")
        return value

    @property
    def hexdigest(self) -> str:
        return self.digest.split(":", 1)[1]


class Component(BaseModel):
    """A [component.<id>] table."""
    id: str = ""
    source: Union[str, RemoteSource]
    description: Optional[str] = None
    files: List[FileMount] = Field(default_factory=list)
    ai_models: List[str] = Field(default_factory=list)
    key_value_stores: List[str] = Field(default_factory=list)
    allowed_outbound_hosts: List[str] = Field(default_factory=list)
    variables: Dict[str, str] = Field(default_factory=dict)
    build: Optional[BuildConfig] = None

    @field_validator("files", mode="before")
    @classmethod
    def _expand_file_shorthand(cls, value):
        # A bare string mounts that directory at the root
        if isinstance(value, list):
            return [{"source": item, "destination": "/"} if isinstance(item, str) else item for item in value]
        return value

    @field_validator("source")
    @classmethod
    def _local_source_is_import_string(cls, value):
        if isinstance(value, str):
            module, sep, attribute = value.partition(":")
            if not sep or not module or not attribute:
                raise ValueError(f"local source must be 'module:attribute', got {value!r}")
        return value

    @property
    def is_remote(self) -> bool:
        return isinstance(self.source, RemoteSource)

    def import_target(self) -> tuple[str, str]:
        """Split a local source into (module, attribute)."""
        if self.is_remote:
            raise ValueError(f"component '{self.id}' has a remote source")
        module, _, attribute = self.source.partition(":")
        return module, attribute


class Variable(BaseModel):
    """An application variable: required, or with a default."""
    required: bool = False
    default: Optional[str] = None
    secret: bool = False

    @model_validator(mode="after")
    def _required_xor_default(self):
        if self.required and self.default is not None:
            raise ValueError("a variable cannot be required and have a default")
        if not self.required and self.default is None:
            raise ValueError("a variable must be required or have a default")
        return self


class ApplicationManifest(BaseModel):
    """A validated manifest."""
    manifest_version: int
    application: ApplicationInfo
    triggers: List[HttpTrigger] = Field(default_factory=list)
    components: Dict[str, Component] = Field(default_factory=dict)
    variables: Dict[str, Variable] = Field(default_factory=dict)
    base_dir: str = "."

    @field_validator("manifest_version")
    @classmethod
    def _supported_version(cls, value: int) -> int:
        if value != 2:
            raise ValueError(f"unsupported manifest_version {value}, expected 2")
        return value

    @model_validator(mode="after")
    def _assign_component_ids(self):
        for component_id, component in self.components.items():
            component.id = component_id
        return self

    def component_for(self, trigger: HttpTrigger) -> Component:
        return self.components[trigger.component]

    def key_value_stores(self) -> List[str]:
        """Sorted union of store labels granted to any component."""
        labels = set()
        for component in self.components.values():
            labels.update(component.key_value_stores)
        return sorted(labels)

    def required_variables(self) -> List[str]:
        return sorted(name for name, variable in self.variables.items() if variable.required)
