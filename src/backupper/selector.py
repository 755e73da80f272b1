# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.

"""Selection of the objects of one resource type."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Protocol

from lightkube import ApiError, Client

from k8s_utils import k8s_generic_resource, k8s_list_objects

from .errors import ListError
from .models import Filter, ObjectRecord, ResourceType, compile_pattern

logger = logging.getLogger(__name__)


class Lister(Protocol):
    """Capability listing the objects of a resource type."""

    def list(self, resource_type: ResourceType, fields: Dict[str, str]) -> List[Dict[str, Any]]:
        """Return the objects of the type matching the field selector."""
        ...  # pragma: no cover


class ApiLister:
    """Lister backed by a lightkube client."""

    def __init__(self, kube_client: Client) -> None:
        self._kube_client = kube_client

    def list(self, resource_type: ResourceType, fields: Dict[str, str]) -> List[Dict[str, Any]]:
        """Return the objects of the type matching the field selector.

        Raises:
            ListError: If the API server refuses or fails the request.
        """
        resource = k8s_generic_resource(
            resource_type.group,
            resource_type.version,
            resource_type.kind,
            resource_type.name,
            resource_type.namespaced,
        )
        try:
            return k8s_list_objects(
                self._kube_client, resource, resource_type.namespaced, fields
            )
        except ApiError as ae:
            logger.error("Failed to list '%s': %s", resource_type.group_resource, ae)
            raise ListError(f"Failed to list resource '{resource_type.group_resource}'") from ae


@dataclass
class Selection:
    """Objects selected for one resource type."""

    objects: List[ObjectRecord] = field(default_factory=list)
    namespaces: List[str] = field(default_factory=list)


class ObjectSelector:
    """Fetches the objects of a resource type that a filter selects."""

    def __init__(self, lister: Lister) -> None:
        self._lister = lister

    @staticmethod
    def field_selector(resource_type: ResourceType, backup_filter: Filter) -> Dict[str, str]:
        """Build the exact-match selector pushed to the lister.

        Field selectors only AND equality terms, so a constraint is pushed down only
        when it names a single value. Sets of several values are matched client side.
        """
        fields = {}
        if len(backup_filter.resource_names) == 1:
            fields["metadata.name"] = backup_filter.resource_names[0]
        if resource_type.namespaced and len(backup_filter.namespaces) == 1:
            fields["metadata.namespace"] = backup_filter.namespaces[0]
        return fields

    def select(self, resource_type: ResourceType, backup_filter: Filter) -> Selection:
        """Select the objects of a resource type.

        When both `resourceNameRegex` and `namespaceRegex` are set, the objects
        matching either pattern are kept (union, not intersection).

        Args:
            resource_type (ResourceType): The type to list.
            backup_filter (Filter): The filter the type was resolved from.

        Returns:
            Selection: The selected objects and the namespaces matched by
                `namespaceRegex`, in first-seen order.

        Raises:
            ListError: If the objects cannot be listed.
            InvalidPatternError: If a name or namespace pattern is malformed.
            MalformedObjectError: If a listed object has no usable metadata.
        """
        name_pattern = None
        if backup_filter.resource_name_regex:
            name_pattern = compile_pattern(backup_filter.resource_name_regex, "resourceNameRegex")
        ns_pattern = None
        if resource_type.namespaced and backup_filter.namespace_regex:
            ns_pattern = compile_pattern(backup_filter.namespace_regex, "namespaceRegex")

        fields = self.field_selector(resource_type, backup_filter)
        candidates = [
            ObjectRecord(data) for data in self._lister.list(resource_type, fields)
        ]
        candidates = self._match_exact(resource_type, backup_filter, candidates)

        if name_pattern is None and ns_pattern is None:
            return Selection(objects=candidates)

        selection = Selection()
        if name_pattern is not None:
            selection.objects.extend(obj for obj in candidates if name_pattern.search(obj.name))
        if ns_pattern is not None:
            for obj in candidates:
                namespace = obj.namespace or ""
                if not ns_pattern.search(namespace):
                    continue
                if obj not in selection.objects:
                    selection.objects.append(obj)
                if namespace not in selection.namespaces:
                    selection.namespaces.append(namespace)

        logger.info(
            "Selected %d of %d '%s' objects",
            len(selection.objects),
            len(candidates),
            resource_type.group_resource,
        )
        return selection

    @staticmethod
    def _match_exact(
        resource_type: ResourceType, backup_filter: Filter, candidates: List[ObjectRecord]
    ) -> List[ObjectRecord]:
        names = set(backup_filter.resource_names)
        namespaces = set(backup_filter.namespaces) if resource_type.namespaced else set()
        return [
            obj
            for obj in candidates
            if (not names or obj.name in names)
            and (not namespaces or obj.namespace in namespaces)
        ]
