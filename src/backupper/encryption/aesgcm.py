# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.

"""AES-GCM transformer."""

import os
from typing import Dict, List, Tuple

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from constants import AESGCM_NONCE_SIZE, AESGCM_PREFIX

from ..errors import EncryptionError
from .classes import Transformer


class AESGCMTransformer(Transformer):
    """Encrypts with the first key, decrypts with the key named in the stored prefix.

    Stored form: 'k8s:enc:aesgcm:v1:<key name>:' followed by the nonce and the
    ciphertext with its authentication tag.
    """

    def __init__(self, keys: List[Tuple[str, bytes]]) -> None:
        if not keys:
            raise ValueError("AES-GCM transformer needs at least one key")
        self._write_key_name, _ = keys[0]
        self._ciphers: Dict[str, AESGCM] = {name: AESGCM(key) for name, key in keys}

    def _prefix(self, key_name: str) -> bytes:
        return f"{AESGCM_PREFIX}{key_name}:".encode("utf-8")

    def transform_to_storage(self, data: bytes, additional_data: bytes) -> bytes:
        """Encrypt the data bound to the additional data."""
        nonce = os.urandom(AESGCM_NONCE_SIZE)
        ciphertext = self._ciphers[self._write_key_name].encrypt(nonce, data, additional_data)
        return self._prefix(self._write_key_name) + nonce + ciphertext

    def transform_from_storage(self, data: bytes, additional_data: bytes) -> bytes:
        """Decrypt the data.

        Raises:
            EncryptionError: If no key matches the prefix, or the data was encrypted
                with other additional data or altered.
        """
        for name, cipher in self._ciphers.items():
            prefix = self._prefix(name)
            if not data.startswith(prefix):
                continue
            payload = data[len(prefix) :]
            nonce, ciphertext = payload[:AESGCM_NONCE_SIZE], payload[AESGCM_NONCE_SIZE:]
            try:
                return cipher.decrypt(nonce, ciphertext, additional_data)
            except InvalidTag as e:
                raise EncryptionError(f"Failed to decrypt data with key '{name}'") from e
        raise EncryptionError("No key matches the stored data prefix")
