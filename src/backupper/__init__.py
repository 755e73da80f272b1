# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.

"""Backupper module."""

from .core import Backupper
from .encryption import AESGCMTransformer, EncryptionGate, load_transformers
from .errors import (
    BackupCancelledError,
    BackupperError,
    DiscoveryError,
    EncryptionConfigError,
    EncryptionError,
    InvalidPatternError,
    LayoutError,
    ListError,
    MalformedObjectError,
    WriteError,
)
from .models import Filter, ObjectPlacement, ObjectRecord, ResourceType, SnapshotResult
from .resolver import ApiDiscovery, FilterResolver
from .sanitizer import ObjectClassifier
from .selector import ApiLister, ObjectSelector, Selection
from .writer import SnapshotWriter

__all__ = [
    "AESGCMTransformer",
    "ApiDiscovery",
    "ApiLister",
    "Backupper",
    "BackupCancelledError",
    "BackupperError",
    "DiscoveryError",
    "EncryptionConfigError",
    "EncryptionError",
    "EncryptionGate",
    "Filter",
    "FilterResolver",
    "InvalidPatternError",
    "LayoutError",
    "ListError",
    "MalformedObjectError",
    "ObjectClassifier",
    "ObjectPlacement",
    "ObjectRecord",
    "ObjectSelector",
    "ResourceType",
    "Selection",
    "SnapshotResult",
    "SnapshotWriter",
    "WriteError",
    "load_transformers",
]
