# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.

import re
from unittest.mock import MagicMock

import httpx
import pytest

from backupper import (
    ApiDiscovery,
    DiscoveryError,
    Filter,
    FilterResolver,
    InvalidPatternError,
    ResourceType,
)

RW_VERBS = ("create", "delete", "get", "list", "patch", "update", "watch")

CORE_RESOURCES = [
    ResourceType("pods", "Pod", "", "v1", True, RW_VERBS),
    ResourceType("services", "Service", "", "v1", True, RW_VERBS),
    ResourceType("secrets", "Secret", "", "v1", True, RW_VERBS),
    ResourceType("configmaps", "ConfigMap", "", "v1", True, RW_VERBS),
    ResourceType("namespaces", "Namespace", "", "v1", False, RW_VERBS),
]

DISCOVERY_DOCUMENT = {
    "kind": "APIResourceList",
    "groupVersion": "example.com/v1",
    "resources": [
        {
            "name": "widgets",
            "singularName": "widget",
            "namespaced": True,
            "kind": "Widget",
            "verbs": ["get", "list", "patch", "update"],
        },
        {
            "name": "widgets/status",
            "singularName": "",
            "namespaced": True,
            "kind": "Widget",
            "verbs": ["get", "patch", "update"],
        },
    ],
}


@pytest.fixture()
def mock_discovery():
    """Mock the discovery capability with the core resources."""
    discovery = MagicMock()
    discovery.resources_for_group_version.return_value = list(CORE_RESOURCES)
    return discovery


@pytest.fixture()
def resolver(mock_discovery):
    """Return a FilterResolver with no excluded resources."""
    return FilterResolver(mock_discovery, avoid_backup_resources=frozenset())


def _response(status_code: int, json=None) -> httpx.Response:
    return httpx.Response(
        status_code, json=json, request=httpx.Request("GET", "https://k8s.local/apis")
    )


def test_resolve_all_kinds(resolver, mock_discovery):
    """Check '.' selects every discovered resource type."""
    realized, resource_types = resolver.resolve(Filter(api_group="v1", kinds_regex="."))

    mock_discovery.resources_for_group_version.assert_called_once_with("v1")
    assert resource_types == CORE_RESOURCES
    assert realized.kinds == [res.name for res in CORE_RESOURCES]


def test_resolve_without_kinds_regex(resolver):
    """Check a filter with neither kinds nor kindsRegex selects every type."""
    _, resource_types = resolver.resolve(Filter(api_group="v1"))

    assert resource_types == CORE_RESOURCES


@pytest.mark.parametrize("pattern", ["^s", "map", "^(services|namespaces)$", "e"])
def test_resolve_kinds_regex_matches_exactly(resolver, pattern):
    """Check every resolved type matches the pattern and none matching is left out."""
    _, resource_types = resolver.resolve(Filter(api_group="v1", kinds_regex=pattern))

    expected = [res for res in CORE_RESOURCES if re.search(pattern, res.name)]
    assert resource_types == expected


def test_resolve_excluded_resource(mock_discovery):
    """Check pods are left out by policy and the realized filter lists services only."""
    resolver = FilterResolver(mock_discovery)
    backup_filter = Filter(api_group="v1", kinds_regex="^(pods|services)$")

    realized, resource_types = resolver.resolve(backup_filter)

    assert [res.name for res in resource_types] == ["services"]
    assert realized.kinds == ["services"]
    assert realized.to_dict()["kinds"] == ["services"]


def test_resolve_leaves_input_filter_untouched(resolver):
    """Check the realized filter is a copy."""
    backup_filter = Filter(api_group="v1", kinds_regex="^secrets$")

    realized, _ = resolver.resolve(backup_filter)
    realized.namespaces.append("default")

    assert backup_filter.kinds == []
    assert backup_filter.namespaces == []
    assert realized is not backup_filter


def test_resolve_explicit_kinds(resolver):
    """Check explicit kinds select by exact name and are kept as given."""
    backup_filter = Filter(api_group="v1", kinds=["secrets", "services"], kinds_regex="^pods$")

    realized, resource_types = resolver.resolve(backup_filter)

    assert [res.name for res in resource_types] == ["services", "secrets"]
    assert realized.kinds == ["secrets", "services"]


def test_resolve_invalid_pattern(resolver, mock_discovery):
    """Check a malformed kindsRegex raises InvalidPatternError before discovery."""
    with pytest.raises(InvalidPatternError):
        resolver.resolve(Filter(api_group="v1", kinds_regex="(services"))

    mock_discovery.resources_for_group_version.assert_not_called()


def test_resolve_invalid_pattern_with_kinds(resolver, mock_discovery):
    """Check a malformed kindsRegex is reported even when kinds takes precedence."""
    with pytest.raises(InvalidPatternError):
        resolver.resolve(Filter(api_group="v1", kinds=["services"], kinds_regex="(services"))

    mock_discovery.resources_for_group_version.assert_not_called()


def test_resolve_discovery_error(resolver, mock_discovery):
    """Check discovery failures propagate."""
    mock_discovery.resources_for_group_version.side_effect = DiscoveryError("unknown")

    with pytest.raises(DiscoveryError):
        resolver.resolve(Filter(api_group="nope.io/v1", kinds_regex="."))


@pytest.mark.parametrize(
    "resource_type,message",
    [
        (
            ResourceType("bindings", "Binding", "", "v1", True, ("create",)),
            "Cannot list resource 'bindings'",
        ),
        (
            ResourceType("events", "Event", "", "v1", True, ("get", "list", "watch")),
            "Cannot update resource 'events'",
        ),
    ],
)
def test_resolve_skips_ineligible(caplog, mock_discovery, resolver, resource_type, message):
    """Check types that cannot be listed or updated are skipped, not failed."""
    mock_discovery.resources_for_group_version.return_value = [resource_type]

    realized, resource_types = resolver.resolve(Filter(api_group="v1", kinds_regex="."))

    assert resource_types == []
    assert realized.kinds == []
    assert message in caplog.text


def test_api_discovery_success():
    """Check discovery documents are turned into resource types."""
    http_client = MagicMock()
    http_client.get.return_value = _response(200, DISCOVERY_DOCUMENT)

    resource_types = ApiDiscovery(http_client).resources_for_group_version("example.com/v1")

    http_client.get.assert_called_once_with("/apis/example.com/v1")
    assert resource_types[0] == ResourceType(
        "widgets", "Widget", "example.com", "v1", True, ("get", "list", "patch", "update")
    )
    assert resource_types[1].name == "widgets/status"
    assert not resource_types[1].can_list


def test_api_discovery_core_group():
    """Check the core group is queried under '/api'."""
    http_client = MagicMock()
    http_client.get.return_value = _response(
        200, {"groupVersion": "v1", "resources": []}
    )

    assert ApiDiscovery(http_client).resources_for_group_version("v1") == []
    http_client.get.assert_called_once_with("/api/v1")


def test_api_discovery_not_found(caplog):
    """Check an unknown group/version raises DiscoveryError without retrying."""
    http_client = MagicMock()
    http_client.get.return_value = _response(404)

    with pytest.raises(DiscoveryError):
        ApiDiscovery(http_client, delay=0).resources_for_group_version("nope.io/v1")

    assert http_client.get.call_count == 1
    assert "Failed to discover resources for 'nope.io/v1'" in caplog.text


def test_api_discovery_retries_transient_errors():
    """Check transport errors and throttling are retried."""
    http_client = MagicMock()
    http_client.get.side_effect = [
        httpx.ConnectError("connection refused"),
        _response(503),
        _response(200, DISCOVERY_DOCUMENT),
    ]

    resource_types = ApiDiscovery(http_client, delay=0).resources_for_group_version(
        "example.com/v1"
    )

    assert http_client.get.call_count == 3
    assert len(resource_types) == 2


def test_api_discovery_gives_up():
    """Check DiscoveryError is raised once the attempts are exhausted."""
    http_client = MagicMock()
    http_client.get.side_effect = httpx.ConnectError("connection refused")

    with pytest.raises(DiscoveryError):
        ApiDiscovery(http_client, attempts=2, delay=0).resources_for_group_version("v1")

    assert http_client.get.call_count == 2
