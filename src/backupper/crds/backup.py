# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.

"""Backup CRD model, the trigger of one backup run."""

from typing import Optional

from lightkube.codecs import resource_registry
from lightkube.core import resource as res
from lightkube.core.schema import DictMixin, dataclass
from lightkube.models import meta_v1

from constants import BACKUPPER_GROUP, BACKUPPER_VERSION


@dataclass
class BackupSpecModel(DictMixin):
    """Backup specification model."""

    local: str
    backupTemplate: str
    backupEncryptionConfigName: Optional[str] = None
    backupEncryptionConfigNamespace: Optional[str] = None


@dataclass
class BackupModel(DictMixin):
    """Backup model representing the Backup CRD."""

    apiVersion: Optional[str] = None
    kind: Optional[str] = None
    metadata: Optional[meta_v1.ObjectMeta] = None
    spec: Optional[BackupSpecModel] = None


@resource_registry.register
class Backup(res.NamespacedResourceG, BackupModel):
    """Backup resource for the Backup CRD."""

    _api_info = res.ApiInfo(
        resource=res.ResourceDef(BACKUPPER_GROUP, BACKUPPER_VERSION, "Backup"),
        plural="backups",
        verbs=[
            "delete",
            "deletecollection",
            "get",
            "global_list",
            "global_watch",
            "list",
            "patch",
            "post",
            "put",
            "watch",
        ],
    )
