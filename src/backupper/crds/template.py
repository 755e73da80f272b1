# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.

"""BackupTemplate CRD model, the ordered filters of a backup."""

from typing import List, Optional

from lightkube.codecs import resource_registry
from lightkube.core import resource as res
from lightkube.core.schema import DictMixin, dataclass
from lightkube.models import meta_v1

from constants import BACKUPPER_GROUP, BACKUPPER_VERSION


@dataclass
class BackupFilterModel(DictMixin):
    """Backup filter model."""

    apiGroup: str
    kinds: Optional[List[str]] = None
    kindsRegex: Optional[str] = None
    resourceNames: Optional[List[str]] = None
    resourceNameRegex: Optional[str] = None
    namespaces: Optional[List[str]] = None
    namespaceRegex: Optional[str] = None


@dataclass
class BackupTemplateModel(DictMixin):
    """BackupTemplate model representing the BackupTemplate CRD."""

    apiVersion: Optional[str] = None
    kind: Optional[str] = None
    metadata: Optional[meta_v1.ObjectMeta] = None
    backupFilters: Optional[List[BackupFilterModel]] = None


@resource_registry.register
class BackupTemplate(res.NamespacedResourceG, BackupTemplateModel):
    """BackupTemplate resource for the BackupTemplate CRD."""

    _api_info = res.ApiInfo(
        resource=res.ResourceDef(BACKUPPER_GROUP, BACKUPPER_VERSION, "BackupTemplate"),
        plural="backuptemplates",
        verbs=["delete", "get", "global_list", "list", "patch", "post", "put", "watch"],
    )
