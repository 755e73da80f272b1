# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.

"""Configuration for the backup pipeline."""

from typing import Any, Dict, FrozenSet, Tuple

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from constants import (
    AVOID_BACKUP_RESOURCES,
    DISCOVERY_ATTEMPTS,
    DISCOVERY_DELAY,
    OLD_UID_LABEL,
    PRIVILEGED_RESOURCES,
    REQUEST_TIMEOUT,
)


class BackupperConfigError(Exception):
    """Raised when the backupper configuration is invalid."""


class ConfigModel(BaseModel):
    """Base Pydantic model for validated configuration documents."""

    @classmethod
    def verror_to_str(cls, ve: ValidationError) -> str:
        """Convert a Pydantic ValidationError to a string."""
        error_messages = []
        for error in ve.errors():
            field = ".".join(map(str, error["loc"]))
            message = error["msg"].replace("Field ", "")
            error_messages.append(f"'{field}' {message}")
        return f"{cls.__name__} errors: " + "; ".join(error_messages)


class BackupperConfig(ConfigModel):
    """Manager for the structured configuration."""

    model_config = ConfigDict(frozen=True)

    avoid_backup_resources: FrozenSet[str] = AVOID_BACKUP_RESOURCES
    privileged_resources: Tuple[str, ...] = PRIVILEGED_RESOURCES
    template_namespace: str = "default"
    uid_label: str = OLD_UID_LABEL
    request_timeout: float = REQUEST_TIMEOUT
    discovery_attempts: int = DISCOVERY_ATTEMPTS
    discovery_delay: float = DISCOVERY_DELAY

    @field_validator("*", mode="before")
    @classmethod
    def blank_string(cls, value):
        """Convert empty strings to None."""
        if value == "":
            return None
        return value

    @field_validator("discovery_attempts")
    @classmethod
    def positive_attempts(cls, value: int) -> int:
        """Require at least one discovery attempt."""
        if value < 1:
            raise ValueError("must be at least 1")
        return value

    @classmethod
    def load(cls, data: Dict[str, Any]) -> "BackupperConfig":
        """Build the configuration from raw data.

        Raises:
            BackupperConfigError: If the data does not validate.
        """
        try:
            return cls(**data)
        except ValidationError as ve:
            raise BackupperConfigError(cls.verror_to_str(ve)) from ve
