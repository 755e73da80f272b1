# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.

"""Backup encryption module."""

from .aesgcm import AESGCMTransformer
from .classes import EncryptionConfiguration, Transformer
from .gate import EncryptionGate, TransformerMap, load_transformers, parse_group_resource

__all__ = [
    "AESGCMTransformer",
    "EncryptionConfiguration",
    "EncryptionGate",
    "Transformer",
    "TransformerMap",
    "load_transformers",
    "parse_group_resource",
]
