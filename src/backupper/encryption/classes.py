# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.

"""Encryption transformer and provider configuration class definitions."""

import base64
import binascii
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, Field, field_validator

from config import ConfigModel


class Transformer(ABC):
    """Base class for transformers applied to object bytes before storage."""

    @abstractmethod
    def transform_to_storage(
        self, data: bytes, additional_data: bytes
    ) -> bytes:  # pragma: no cover
        """Return the stored form of the data, bound to the additional data."""
        ...

    @abstractmethod
    def transform_from_storage(
        self, data: bytes, additional_data: bytes
    ) -> bytes:  # pragma: no cover
        """Return the original data from its stored form."""
        ...


class EncryptionConfigModel(ConfigModel):
    """Base Pydantic model for the encryption provider configuration."""

    model_config = ConfigDict(validate_by_name=True, validate_by_alias=True)


class KeyModel(EncryptionConfigModel):
    """Named AES key, base64 encoded."""

    name: str
    secret: str

    @field_validator("secret")
    @classmethod
    def check_key_size(cls, value: str) -> str:
        """Ensure the secret decodes to an AES-128, AES-192 or AES-256 key."""
        try:
            key = base64.b64decode(value, validate=True)
        except binascii.Error as e:
            raise ValueError("secret is not valid base64") from e
        if len(key) not in (16, 24, 32):
            raise ValueError(f"secret must decode to 16, 24 or 32 bytes, got {len(key)}")
        return value

    @property
    def key(self) -> bytes:
        """Return the decoded key."""
        return base64.b64decode(self.secret)


class KeysModel(EncryptionConfigModel):
    """Key list of a key-based provider."""

    keys: List[KeyModel] = Field(min_length=1)


class ProviderModel(EncryptionConfigModel):
    """One provider entry; exactly one provider name is expected per entry."""

    model_config = ConfigDict(extra="allow")

    aesgcm: Optional[KeysModel] = None
    identity: Optional[Dict[str, Any]] = None

    @property
    def names(self) -> List[str]:
        """Return the provider names set in the entry."""
        names = [name for name in ("aesgcm", "identity") if getattr(self, name) is not None]
        return names + list(self.model_extra or {})


class ResourceConfigModel(EncryptionConfigModel):
    """Providers applying to a set of '<resource>' or '<resource>.<group>' names."""

    resources: List[str] = Field(min_length=1)
    providers: List[ProviderModel] = Field(min_length=1)


class EncryptionConfiguration(EncryptionConfigModel):
    """Pydantic model for an apiserver-style EncryptionConfiguration document."""

    api_version: Optional[str] = Field(None, alias="apiVersion")
    kind: Optional[str] = Field(None, alias="kind")
    resources: List[ResourceConfigModel] = Field(default_factory=list)
