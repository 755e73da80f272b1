# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.

"""Value types shared by the backup pipeline."""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Pattern, Tuple

from lightkube.models.meta_v1 import APIResource
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from constants import Partition

from .errors import InvalidPatternError, MalformedObjectError


def compile_pattern(pattern: str, field_name: str) -> Pattern[str]:
    """Compile a filter pattern.

    Raises:
        InvalidPatternError: If the pattern is not a valid regular expression.
    """
    try:
        return re.compile(pattern)
    except re.error as e:
        raise InvalidPatternError(f"Invalid {field_name} '{pattern}': {e}") from e


class Filter(BaseModel):
    """One rule of a backup template."""

    model_config = ConfigDict(validate_by_name=True, validate_by_alias=True)

    api_group: str = Field(
        validation_alias=AliasChoices("apiGroup", "apiGroupVersion"),
        serialization_alias="apiGroup",
    )
    kinds: List[str] = Field(default_factory=list, alias="kinds")
    kinds_regex: Optional[str] = Field(None, alias="kindsRegex")
    resource_names: List[str] = Field(default_factory=list, alias="resourceNames")
    resource_name_regex: Optional[str] = Field(None, alias="resourceNameRegex")
    namespaces: List[str] = Field(default_factory=list, alias="namespaces")
    namespace_regex: Optional[str] = Field(None, alias="namespaceRegex")

    @field_validator("kinds_regex", "resource_name_regex", "namespace_regex", mode="before")
    @classmethod
    def blank_string(cls, value):
        """Convert empty strings to None."""
        if value == "":
            return None
        return value

    @field_validator("kinds", "resource_names", "namespaces", mode="before")
    @classmethod
    def null_list(cls, value):
        """Convert null lists to empty lists."""
        if value is None:
            return []
        return value

    @field_validator("api_group")
    @classmethod
    def valid_group_version(cls, value: str) -> str:
        """Check the value looks like '<version>' or '<group>/<version>'."""
        parts = value.split("/")
        if len(parts) > 2 or not all(parts):
            raise ValueError(f"unexpected group version string '{value}'")
        return value

    @property
    def group(self) -> str:
        """Return the API group, empty for the core group."""
        return self.api_group.rpartition("/")[0]

    @property
    def version(self) -> str:
        """Return the API version."""
        return self.api_group.rpartition("/")[2]

    def to_dict(self) -> Dict[str, Any]:
        """Return the filter with its wire field names."""
        return self.model_dump(by_alias=True, exclude_none=True)


@dataclass(frozen=True)
class ResourceType:
    """Resource type descriptor as reported by discovery."""

    name: str
    kind: str
    group: str
    version: str
    namespaced: bool
    verbs: Tuple[str, ...] = ()

    @classmethod
    def from_api_resource(cls, resource: APIResource, group: str, version: str) -> "ResourceType":
        """Build a descriptor from a discovery entry of the given group/version."""
        return cls(
            name=resource.name,
            kind=resource.kind,
            group=resource.group or group,
            version=resource.version or version,
            namespaced=bool(resource.namespaced),
            verbs=tuple(resource.verbs or ()),
        )

    @property
    def group_resource(self) -> str:
        """Return the '<resource>.<group>' identifier, '<resource>' for the core group."""
        return f"{self.name}.{self.group}" if self.group else self.name

    @property
    def directory_name(self) -> str:
        """Return the snapshot subdirectory name of the type."""
        return f"{self.name}.{self.group}#{self.version}"

    @property
    def can_list(self) -> bool:
        """Return True if objects of the type can be listed."""
        return "list" in self.verbs

    @property
    def can_update(self) -> bool:
        """Return True if objects of the type can be updated or patched."""
        return "update" in self.verbs or "patch" in self.verbs


class ObjectRecord:
    """Catalog object with typed access to its metadata."""

    def __init__(self, data: Dict[str, Any]) -> None:
        self._data = data

    @property
    def data(self) -> Dict[str, Any]:
        """Return the underlying document."""
        return self._data

    @property
    def metadata(self) -> Dict[str, Any]:
        """Return the metadata mapping.

        Raises:
            MalformedObjectError: If metadata or metadata.name is missing or malformed.
        """
        metadata = self._data.get("metadata")
        if not isinstance(metadata, dict):
            raise MalformedObjectError("Object has no metadata mapping")
        name = metadata.get("name")
        if not isinstance(name, str) or not name:
            raise MalformedObjectError("Object metadata has no name")
        return metadata

    @property
    def name(self) -> str:
        """Return the object name."""
        return self.metadata["name"]

    @property
    def namespace(self) -> Optional[str]:
        """Return the object namespace, if any."""
        return self._optional_str("namespace")

    @property
    def uid(self) -> Optional[str]:
        """Return the server-assigned uid, if any."""
        return self._optional_str("uid")

    @property
    def owner_references(self) -> List[Dict[str, Any]]:
        """Return the owner references, empty when absent."""
        refs = self.metadata.get("ownerReferences")
        if refs is None:
            return []
        if not isinstance(refs, list):
            raise MalformedObjectError(f"Object '{self.name}' has malformed ownerReferences")
        return refs

    @property
    def is_finalizing(self) -> bool:
        """Return True if the object is being deleted with no finalizer left."""
        metadata = self.metadata
        return metadata.get("deletionTimestamp") is not None and not metadata.get("finalizers")

    @property
    def labels(self) -> Dict[str, str]:
        """Return the labels mapping, created empty when absent."""
        metadata = self.metadata
        labels = metadata.get("labels")
        if labels is None:
            labels = metadata["labels"] = {}
        if not isinstance(labels, dict):
            raise MalformedObjectError(f"Object '{self.name}' has malformed labels")
        return labels

    def set_label(self, key: str, value: str) -> None:
        """Set a label, creating the labels mapping if absent."""
        self.labels[key] = value

    def _optional_str(self, key: str) -> Optional[str]:
        value = self.metadata.get(key)
        if value is not None and not isinstance(value, str):
            raise MalformedObjectError(f"Object '{self.name}' has malformed {key}")
        return value


@dataclass(frozen=True)
class ObjectPlacement:
    """Where a sanitized object is written in the snapshot."""

    partition: Partition
    privileged: bool = False


@dataclass
class SnapshotResult:
    """Outcome of one backup run."""

    path: str
    published: bool
    filters: List[Filter] = field(default_factory=list)
    written: int = 0
    skipped: int = 0
