# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.

"""BackupEncryptionConfig CRD model, pointing at the encryption provider secret."""

from typing import Optional

from lightkube.codecs import resource_registry
from lightkube.core import resource as res
from lightkube.core.schema import DictMixin, dataclass
from lightkube.models import meta_v1

from constants import BACKUPPER_GROUP, BACKUPPER_VERSION


@dataclass
class BackupEncryptionConfigSpecModel(DictMixin):
    """BackupEncryptionConfig specification model."""

    encryptionConfigSecretName: str


@dataclass
class BackupEncryptionConfigModel(DictMixin):
    """BackupEncryptionConfig model representing the BackupEncryptionConfig CRD."""

    apiVersion: Optional[str] = None
    kind: Optional[str] = None
    metadata: Optional[meta_v1.ObjectMeta] = None
    spec: Optional[BackupEncryptionConfigSpecModel] = None


@resource_registry.register
class BackupEncryptionConfig(res.NamespacedResourceG, BackupEncryptionConfigModel):
    """BackupEncryptionConfig resource for the BackupEncryptionConfig CRD."""

    _api_info = res.ApiInfo(
        resource=res.ResourceDef(BACKUPPER_GROUP, BACKUPPER_VERSION, "BackupEncryptionConfig"),
        plural="backupencryptionconfigs",
        verbs=["delete", "get", "global_list", "list", "patch", "post", "put", "watch"],
    )
