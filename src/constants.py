# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.

"""File containing constants."""

from enum import Enum

BACKUPPER_GROUP = "backupper.cattle.io"
BACKUPPER_VERSION = "v1"

OWNERS_DIR = "owners"
DEPENDENTS_DIR = "dependents"
FILTERS_FILE = "filters.json"
OBJECT_FILE_SUFFIX = ".json"

OLD_UID_LABEL = "original-uid"

AVOID_BACKUP_RESOURCES = frozenset({"pods"})
PRIVILEGED_RESOURCES = ("customresourcedefinitions", "namespaces")

VOLATILE_METADATA_FIELDS = ("uid", "resourceVersion", "generation", "creationTimestamp")

ALL_KINDS_REGEX = "."

DISCOVERY_ATTEMPTS = 3
DISCOVERY_DELAY = 1
REQUEST_TIMEOUT = 30

ENCRYPTION_CONFIG_SECRET_KEY = "encryption-provider-config.yaml"
AESGCM_PREFIX = "k8s:enc:aesgcm:v1:"
AESGCM_NONCE_SIZE = 12


class Partition(str, Enum):
    """Snapshot partition enum."""

    OWNERS = OWNERS_DIR
    DEPENDENTS = DEPENDENTS_DIR
