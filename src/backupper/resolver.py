# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.

"""Resolution of backup filters into concrete resource types."""

import logging
from typing import AbstractSet, List, Protocol, Tuple

import httpx

from constants import ALL_KINDS_REGEX, AVOID_BACKUP_RESOURCES, DISCOVERY_ATTEMPTS, DISCOVERY_DELAY
from k8s_utils import k8s_get_api_resources

from .errors import DiscoveryError
from .models import Filter, ResourceType, compile_pattern

logger = logging.getLogger(__name__)


class Discovery(Protocol):
    """Capability answering which resource types a group/version serves."""

    def resources_for_group_version(self, group_version: str) -> List[ResourceType]:
        """Return the resource types served under the group/version."""
        ...  # pragma: no cover


class ApiDiscovery:
    """Discovery backed by the API server discovery endpoints."""

    def __init__(
        self,
        http_client: httpx.Client,
        attempts: int = DISCOVERY_ATTEMPTS,
        delay: float = DISCOVERY_DELAY,
    ) -> None:
        """Initialize the ApiDiscovery class.

        Args:
            http_client: Client configured with the API server base URL, auth and timeout.
            attempts: Maximum number of attempts on transient failures.
            delay: Delay between attempts in seconds.
        """
        self._http_client = http_client
        self._attempts = attempts
        self._delay = delay

    def resources_for_group_version(self, group_version: str) -> List[ResourceType]:
        """Return the resource types served under the group/version.

        Raises:
            DiscoveryError: If the group/version is unknown or unreachable.
        """
        group, _, version = group_version.rpartition("/")
        try:
            resources = k8s_get_api_resources(
                self._http_client, group_version, attempts=self._attempts, delay=self._delay
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Failed to discover resources for '%s': %s", group_version, e)
            raise DiscoveryError(f"Failed to discover resources for '{group_version}'") from e
        return [ResourceType.from_api_resource(res, group, version) for res in resources]


class FilterResolver:
    """Turns a backup filter into the resource types it selects."""

    def __init__(
        self,
        discovery: Discovery,
        avoid_backup_resources: AbstractSet[str] = AVOID_BACKUP_RESOURCES,
    ) -> None:
        self._discovery = discovery
        self._avoid_backup_resources = avoid_backup_resources

    def is_eligible(self, resource_type: ResourceType) -> bool:
        """Check whether objects of the type can be backed up and restored later."""
        if resource_type.name in self._avoid_backup_resources:
            logger.info("Skipping excluded resource '%s'", resource_type.group_resource)
            return False
        if not resource_type.can_list:
            logger.warning("Cannot list resource '%s'", resource_type.group_resource)
            return False
        if not resource_type.can_update:
            logger.warning("Cannot update resource '%s'", resource_type.group_resource)
            return False
        return True

    def resolve(self, backup_filter: Filter) -> Tuple[Filter, List[ResourceType]]:
        """Resolve a filter against discovery.

        Args:
            backup_filter (Filter): The filter to resolve. It is left untouched.

        Returns:
            Tuple[Filter, List[ResourceType]]: The realized copy of the filter, with
                `kinds` populated, and the eligible resource types it selects.

        Raises:
            DiscoveryError: If the filter group/version cannot be discovered.
            InvalidPatternError: If `kindsRegex` is malformed.
        """
        pattern = None
        if backup_filter.kinds_regex and backup_filter.kinds_regex != ALL_KINDS_REGEX:
            pattern = compile_pattern(backup_filter.kinds_regex, "kindsRegex")

        discovered = self._discovery.resources_for_group_version(backup_filter.api_group)

        if backup_filter.kinds:
            wanted = set(backup_filter.kinds)
            matched = [res for res in discovered if res.name in wanted]
        elif pattern is None:
            matched = discovered
        else:
            matched = [res for res in discovered if pattern.search(res.name)]

        resource_types = [res for res in matched if self.is_eligible(res)]

        realized = backup_filter.model_copy(deep=True)
        if not realized.kinds:
            realized.kinds = [res.name for res in resource_types]

        logger.info(
            "Filter for '%s' resolved to resources: %s",
            backup_filter.api_group,
            ", ".join(res.name for res in resource_types) or "<none>",
        )
        return realized, resource_types
