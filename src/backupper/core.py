# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.

"""Backup pipeline: resolve filters, select, sanitize, encrypt and persist objects."""

import json
import logging
import os
import threading
from typing import List, Optional

import httpx
from lightkube import Client

from config import BackupperConfig

from .encryption import EncryptionGate, TransformerMap
from .errors import BackupCancelledError, BackupperError
from .models import Filter, ObjectRecord, ResourceType, SnapshotResult
from .resolver import ApiDiscovery, FilterResolver
from .sanitizer import ObjectClassifier
from .selector import ApiLister, ObjectSelector
from .writer import SnapshotWriter

logger = logging.getLogger(__name__)


class Backupper:
    """Runs one backup pass into a snapshot directory."""

    def __init__(
        self,
        resolver: FilterResolver,
        selector: ObjectSelector,
        classifier: ObjectClassifier,
        gate: Optional[EncryptionGate] = None,
    ) -> None:
        """Initialize the Backupper class.

        Args:
            resolver: Resolves filters into resource types.
            selector: Selects the objects of a resource type.
            classifier: Sanitizes objects and decides their placement.
            gate: Encrypts serialized objects. Objects are stored in clear when omitted.
        """
        self._resolver = resolver
        self._selector = selector
        self._classifier = classifier
        self._gate = gate or EncryptionGate()

    @classmethod
    def from_clients(
        cls,
        kube_client: Client,
        http_client: httpx.Client,
        config: BackupperConfig,
        transformers: Optional[TransformerMap] = None,
    ) -> "Backupper":
        """Build a Backupper talking to the API server through the given clients."""
        discovery = ApiDiscovery(
            http_client, attempts=config.discovery_attempts, delay=config.discovery_delay
        )
        return cls(
            FilterResolver(discovery, config.avoid_backup_resources),
            ObjectSelector(ApiLister(kube_client)),
            ObjectClassifier(config.uid_label, config.privileged_resources),
            EncryptionGate(transformers),
        )

    def run(
        self,
        destination: str,
        filters: List[Filter],
        cancel: Optional[threading.Event] = None,
    ) -> SnapshotResult:
        """Back up the objects selected by the filters into a snapshot.

        Nothing is done when the destination already exists. Otherwise the snapshot
        is built aside and published only once every filter has been processed and
        the realized filters are written.

        Args:
            destination (str): Path of the snapshot root.
            filters (List[Filter]): The backup template filters, left untouched.
            cancel (Optional[threading.Event]): Set to abort the run.

        Returns:
            SnapshotResult: The outcome of the run.

        Raises:
            BackupperError: On the first failure of any step; the staging tree is removed.
        """
        if os.path.exists(destination):
            logger.info("Snapshot '%s' already exists, skipping backup", destination)
            return SnapshotResult(path=destination, published=False)

        run_msg = (
            "Starting backup with the following settings:\n"
            f"  Destination: '{destination}'\n"
            f"  Filters: {len(filters)}\n"
            + "\n".join(f"    {f.api_group}: {f.kinds or f.kinds_regex or '.'}" for f in filters)
        )
        logger.info(run_msg)

        writer = SnapshotWriter.create(destination)
        result = SnapshotResult(path=writer.destination, published=False)
        try:
            for index, backup_filter in enumerate(filters):
                self._check_cancelled(cancel)
                try:
                    result.filters.append(
                        self._gather_filter(writer, backup_filter, result, cancel)
                    )
                except BackupperError as e:
                    raise type(e)(
                        f"Backup filter {index} ('{backup_filter.api_group}'): {e}"
                    ) from e
            self._check_cancelled(cancel)
            writer.write_filters(result.filters)
            writer.publish()
        except Exception:
            writer.discard()
            raise

        result.published = True
        logger.info(
            "Backup '%s' done: %d objects written, %d skipped",
            result.path,
            result.written,
            result.skipped,
        )
        return result

    def _gather_filter(
        self,
        writer: SnapshotWriter,
        backup_filter: Filter,
        result: SnapshotResult,
        cancel: Optional[threading.Event],
    ) -> Filter:
        realized, resource_types = self._resolver.resolve(backup_filter)
        for resource_type in resource_types:
            self._check_cancelled(cancel)
            selection = self._selector.select(resource_type, backup_filter)
            for namespace in selection.namespaces:
                if namespace not in realized.namespaces:
                    realized.namespaces.append(namespace)
            for obj in selection.objects:
                self._check_cancelled(cancel)
                self._backup_object(writer, obj, resource_type, result)
        return realized

    def _backup_object(
        self,
        writer: SnapshotWriter,
        obj: ObjectRecord,
        resource_type: ResourceType,
        result: SnapshotResult,
    ) -> None:
        placement = self._classifier.classify(obj, resource_type)
        if placement is None:
            result.skipped += 1
            return

        name = obj.name
        data = json.dumps(obj.data, sort_keys=True).encode("utf-8")
        data = self._gate.protect(data, resource_type, name)
        for directory in writer.placement_paths(placement, resource_type):
            writer.write(data, directory, name)
        result.written += 1

    @staticmethod
    def _check_cancelled(cancel: Optional[threading.Event]) -> None:
        if cancel is not None and cancel.is_set():
            raise BackupCancelledError("Backup was cancelled")
