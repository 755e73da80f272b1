# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.

"""Classification and sanitization of objects before they are written."""

import logging
from typing import Iterable, Optional

from constants import OLD_UID_LABEL, PRIVILEGED_RESOURCES, VOLATILE_METADATA_FIELDS, Partition

from .models import ObjectPlacement, ObjectRecord, ResourceType

logger = logging.getLogger(__name__)


class ObjectClassifier:
    """Decides where an object goes and strips its server-assigned fields."""

    def __init__(
        self,
        uid_label: str = OLD_UID_LABEL,
        privileged_resources: Iterable[str] = PRIVILEGED_RESOURCES,
    ) -> None:
        self._uid_label = uid_label
        self._privileged_resources = frozenset(privileged_resources)

    def sanitize(self, obj: ObjectRecord) -> None:
        """Strip volatile metadata in place, keeping the uid as a label.

        Running it on an already sanitized object changes nothing.
        """
        uid = obj.uid
        if uid is not None:
            obj.set_label(self._uid_label, uid)

        metadata = obj.metadata
        for key in VOLATILE_METADATA_FIELDS:
            metadata.pop(key, None)

    def classify(
        self, obj: ObjectRecord, resource_type: ResourceType
    ) -> Optional[ObjectPlacement]:
        """Sanitize the object and return its placement.

        Returns:
            Optional[ObjectPlacement]: Where to write the object, or None when the
                object is being deleted and has no finalizer left to preserve.

        Raises:
            MalformedObjectError: If the object metadata is malformed.
        """
        if obj.is_finalizing:
            logger.info(
                "Skipping '%s' object '%s': deleted with no finalizers",
                resource_type.group_resource,
                obj.name,
            )
            return None

        self.sanitize(obj)

        partition = Partition.DEPENDENTS if obj.owner_references else Partition.OWNERS
        return ObjectPlacement(
            partition=partition,
            privileged=resource_type.name in self._privileged_resources,
        )
