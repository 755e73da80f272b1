# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.

"""Backup controller: turns a Backup custom resource into one pipeline run."""

import logging
import os
import threading
from typing import List, Optional

import httpx
from lightkube import ApiError, Client, KubeConfig
from lightkube.config import client_adapter
from pydantic import ValidationError

from backupper import Backupper, Filter, SnapshotResult, load_transformers
from backupper.crds import Backup, BackupEncryptionConfig, BackupSpecModel, BackupTemplate
from backupper.encryption import TransformerMap
from config import BackupperConfig
from constants import ENCRYPTION_CONFIG_SECRET_KEY
from k8s_utils import k8s_get_secret_value

logger = logging.getLogger(__name__)


class ControllerError(Exception):
    """Base class for all controller errors."""


class BackupController:
    """Handles changes of Backup resources."""

    def __init__(
        self, kube_client: Client, http_client: httpx.Client, config: BackupperConfig
    ) -> None:
        self._kube_client = kube_client
        self._http_client = http_client
        self._config = config

    @classmethod
    def from_environment(cls, config: BackupperConfig) -> "BackupController":
        """Build a controller from the in-cluster or kubeconfig credentials."""
        kube_config = KubeConfig.from_env()
        timeout = httpx.Timeout(config.request_timeout)
        return cls(
            Client(
                config=kube_config, field_manager="backupper-lightkube", timeout=timeout
            ),
            client_adapter.Client(kube_config.get(), timeout),
            config,
        )

    # EVENT HANDLERS

    def on_backup_change(
        self, backup: Backup, cancel: Optional[threading.Event] = None
    ) -> SnapshotResult:
        """Run the backup described by a Backup resource.

        Raises:
            ControllerError: If the Backup, its template or its encryption config is unusable.
            BackupperError: If the backup run fails.
        """
        if not backup.spec or not backup.metadata:
            raise ControllerError("Backup has no spec")
        spec = backup.spec

        if os.path.exists(spec.local):
            logger.info("Backup path '%s' already exists, nothing to do", spec.local)
            return SnapshotResult(path=spec.local, published=False)

        transformers = self._load_transformers(spec, backup.metadata.namespace)
        filters = self._load_filters(spec.backupTemplate)

        backupper = Backupper.from_clients(
            self._kube_client, self._http_client, self._config, transformers
        )
        return backupper.run(spec.local, filters, cancel)

    # HELPERS

    def _load_transformers(
        self, spec: BackupSpecModel, backup_namespace: Optional[str]
    ) -> TransformerMap:
        if not spec.backupEncryptionConfigName:
            logger.info("No encryption config set, objects are stored in clear")
            return {}

        namespace = spec.backupEncryptionConfigNamespace or backup_namespace
        try:
            encryption_config = self._kube_client.get(
                BackupEncryptionConfig,
                name=spec.backupEncryptionConfigName,
                namespace=namespace,
            )
            if not encryption_config.spec:
                raise ControllerError(
                    f"BackupEncryptionConfig '{spec.backupEncryptionConfigName}' has no spec"
                )
            config_yaml = k8s_get_secret_value(
                self._kube_client,
                encryption_config.spec.encryptionConfigSecretName,
                namespace,
                ENCRYPTION_CONFIG_SECRET_KEY,
            )
        except (ApiError, KeyError) as e:
            logger.error("Failed to read encryption config: %s", e)
            raise ControllerError(
                f"Failed to read encryption config '{spec.backupEncryptionConfigName}'"
            ) from e
        return load_transformers(config_yaml)

    def _load_filters(self, template_name: str) -> List[Filter]:
        try:
            template = self._kube_client.get(
                BackupTemplate, name=template_name, namespace=self._config.template_namespace
            )
        except ApiError as ae:
            logger.error("Failed to get backup template '%s': %s", template_name, ae)
            raise ControllerError(f"Failed to get backup template '{template_name}'") from ae

        try:
            return [Filter.model_validate(f.to_dict()) for f in template.backupFilters or []]
        except ValidationError as ve:
            raise ControllerError(f"Invalid filter in backup template '{template_name}'") from ve
