# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.

"""Backupper CRDs module."""

from .backup import Backup, BackupModel, BackupSpecModel
from .encryption_config import (
    BackupEncryptionConfig,
    BackupEncryptionConfigModel,
    BackupEncryptionConfigSpecModel,
)
from .template import BackupFilterModel, BackupTemplate, BackupTemplateModel

__all__ = [
    "Backup",
    "BackupModel",
    "BackupSpecModel",
    "BackupEncryptionConfig",
    "BackupEncryptionConfigModel",
    "BackupEncryptionConfigSpecModel",
    "BackupFilterModel",
    "BackupTemplate",
    "BackupTemplateModel",
]
