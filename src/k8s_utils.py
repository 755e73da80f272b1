# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.

"""Utility functions for Kubernetes discovery and listing."""

import base64
import logging
from typing import Any, Dict, List, Optional, Type, Union

import httpx
from lightkube import ALL_NS, Client
from lightkube.generic_resource import (
    GenericGlobalResource,
    GenericNamespacedResource,
    create_global_resource,
    create_namespaced_resource,
)
from lightkube.models.meta_v1 import APIResource, APIResourceList
from lightkube.resources.core_v1 import Secret
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_fixed

from constants import DISCOVERY_ATTEMPTS, DISCOVERY_DELAY

logger = logging.getLogger(__name__)

GenericResource = Type[Union[GenericNamespacedResource, GenericGlobalResource]]


def _is_transient(error: BaseException) -> bool:
    if isinstance(error, httpx.TransportError):
        return True
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code in (429, 503)
    return False


def k8s_discovery_path(group_version: str) -> str:
    """Return the discovery endpoint of a group/version.

    The core group is served under '/api', every other group under '/apis'.
    """
    if "/" in group_version:
        return f"/apis/{group_version}"
    return f"/api/{group_version}"


def k8s_get_api_resources(
    http_client: httpx.Client,
    group_version: str,
    *,
    attempts: int = DISCOVERY_ATTEMPTS,
    delay: float = DISCOVERY_DELAY,
) -> List[APIResource]:
    """Fetch the resources served under a group/version.

    Transport failures and throttling answers are retried, anything else is raised
    on the first occurrence.

    Args:
        http_client (httpx.Client): Client configured with the API server base URL and auth.
        group_version (str): The group/version to query, e.g. "v1" or "apps/v1".
        attempts (int): Maximum number of attempts.
        delay (float): Delay between attempts in seconds.

    Returns:
        List[APIResource]: The resources reported by the API server.

    Raises:
        httpx.HTTPError: If the discovery document cannot be fetched.
        ValueError: If the discovery document cannot be decoded.
    """
    path = k8s_discovery_path(group_version)

    for attempt in Retrying(
        stop=stop_after_attempt(attempts),
        wait=wait_fixed(delay),
        retry=retry_if_exception(_is_transient),
        reraise=True,
    ):
        with attempt:
            response = http_client.get(path)
            response.raise_for_status()

    try:
        resource_list = APIResourceList.from_dict(response.json())
    except (TypeError, KeyError) as e:
        raise ValueError(f"Malformed discovery document for '{group_version}'") from e
    return list(resource_list.resources or [])


def k8s_generic_resource(
    group: str, version: str, kind: str, plural: str, namespaced: bool
) -> GenericResource:
    """Return a generic lightkube resource class for a discovered type."""
    if namespaced:
        return create_namespaced_resource(group, version, kind, plural)
    return create_global_resource(group, version, kind, plural)


def k8s_list_objects(
    kube_client: Client,
    resource: GenericResource,
    namespaced: bool,
    fields: Optional[Dict[str, str]] = None,
) -> List[Dict[str, Any]]:
    """List the objects of a resource across all namespaces.

    Args:
        kube_client (Client): The Kubernetes client used to interact with the cluster.
        resource (GenericResource): The resource class to list.
        namespaced (bool): Whether the resource is namespaced.
        fields (Optional[Dict[str, str]]): Field selector pushed to the API server.

    Returns:
        List[Dict[str, Any]]: The listed objects as plain documents.

    Raises:
        ApiError: If the objects cannot be listed.
    """
    if namespaced:
        items = kube_client.list(resource, namespace=ALL_NS, fields=fields or None)
    else:
        items = kube_client.list(resource, fields=fields or None)
    return [item.to_dict() for item in items]


def k8s_get_secret_value(kube_client: Client, name: str, namespace: str, key: str) -> str:
    """Return one decoded value of a Kubernetes secret.

    Args:
        kube_client (Client): The Kubernetes client used to interact with the cluster.
        name (str): The name of the secret.
        namespace (str): The namespace of the secret.
        key (str): The data key to read.

    Raises:
        ApiError: If the secret cannot be retrieved.
        KeyError: If the secret has no such key.
    """
    secret = kube_client.get(Secret, name=name, namespace=namespace)
    data = secret.data or {}
    if key not in data:
        logger.error("Secret '%s' in namespace '%s' has no key '%s'", name, namespace, key)
        raise KeyError(key)
    return base64.b64decode(data[key]).decode("utf-8")
