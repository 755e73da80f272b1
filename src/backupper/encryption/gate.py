# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.

"""Encryption of serialized objects keyed by resource type."""

import base64
import json
import logging
from typing import Dict, Optional, Tuple

import yaml
from pydantic import ValidationError

from ..errors import EncryptionConfigError, EncryptionError
from ..models import ResourceType
from .aesgcm import AESGCMTransformer
from .classes import EncryptionConfiguration, ProviderModel, Transformer

logger = logging.getLogger(__name__)

GroupResource = Tuple[str, str]
TransformerMap = Dict[GroupResource, Transformer]


def parse_group_resource(value: str) -> GroupResource:
    """Split '<resource>.<group>' at the first dot; a bare name is in the core group."""
    resource, _, group = value.partition(".")
    return resource, group


def _build_transformer(provider: ProviderModel) -> Optional[Transformer]:
    names = provider.names
    if len(names) != 1:
        raise EncryptionConfigError(f"Expected exactly one provider per entry, got {names}")
    if provider.aesgcm is not None:
        return AESGCMTransformer([(key.name, key.key) for key in provider.aesgcm.keys])
    if provider.identity is not None:
        return None
    raise EncryptionConfigError(f"Unsupported encryption provider '{names[0]}'")


def load_transformers(config: str) -> TransformerMap:
    """Build the transformers of an EncryptionConfiguration YAML document.

    The first provider of each entry is the one used to write. An 'identity' first
    provider leaves its resources in clear.

    Raises:
        EncryptionConfigError: If the document is malformed or uses an unsupported provider.
    """
    try:
        data = yaml.safe_load(config) or {}
    except yaml.YAMLError as e:
        raise EncryptionConfigError("Encryption configuration is not valid YAML") from e
    if not isinstance(data, dict):
        raise EncryptionConfigError("Encryption configuration must be a mapping")

    try:
        encryption_config = EncryptionConfiguration(**data)
    except ValidationError as ve:
        raise EncryptionConfigError(EncryptionConfiguration.verror_to_str(ve)) from ve

    # The first entry naming a resource wins, identity included.
    claimed: Dict[GroupResource, Optional[Transformer]] = {}
    for entry in encryption_config.resources:
        transformer = _build_transformer(entry.providers[0])
        for name in entry.resources:
            claimed.setdefault(parse_group_resource(name), transformer)
    transformers: TransformerMap = {
        gr: transformer for gr, transformer in claimed.items() if transformer is not None
    }

    logger.info(
        "Loaded encryption for resources: %s",
        ", ".join(".".join(filter(None, gr)) for gr in transformers) or "<none>",
    )
    return transformers


class EncryptionGate:
    """Applies the transformer registered for a resource type, if any."""

    def __init__(self, transformers: Optional[TransformerMap] = None) -> None:
        self._transformers = transformers or {}

    def transformer_for(self, resource_type: ResourceType) -> Optional[Transformer]:
        """Return the transformer registered for the type, None to store in clear."""
        return self._transformers.get((resource_type.name, resource_type.group))

    def protect(self, data: bytes, resource_type: ResourceType, object_name: str) -> bytes:
        """Return the bytes to store for a serialized object.

        Encrypted objects are stored as a JSON string holding the base64 ciphertext.
        The object name is bound as additional authenticated data.

        Raises:
            EncryptionError: If the transformer fails.
        """
        transformer = self.transformer_for(resource_type)
        if transformer is None:
            return data
        try:
            encrypted = transformer.transform_to_storage(data, object_name.encode("utf-8"))
        except EncryptionError:
            raise
        except Exception as e:
            logger.error(
                "Failed to encrypt '%s' object '%s': %s",
                resource_type.group_resource,
                object_name,
                e,
            )
            raise EncryptionError(
                f"Failed to encrypt '{resource_type.group_resource}' object '{object_name}'"
            ) from e
        return json.dumps(base64.b64encode(encrypted).decode("ascii")).encode("utf-8")
