# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.

"""Backup pipeline exceptions."""


class BackupperError(Exception):
    """Base class for backup pipeline exceptions."""


class DiscoveryError(BackupperError):
    """Raised when the resources of a group/version cannot be discovered."""


class InvalidPatternError(BackupperError):
    """Raised when a filter carries a malformed regular expression."""


class ListError(BackupperError):
    """Raised when the objects of a resource type cannot be listed."""


class MalformedObjectError(BackupperError):
    """Raised when an object lacks the required metadata structure."""


class EncryptionError(BackupperError):
    """Raised when an object cannot be encrypted or decrypted."""


class EncryptionConfigError(BackupperError):
    """Raised when the encryption provider configuration is invalid."""


class LayoutError(BackupperError):
    """Raised when the snapshot directory tree cannot be created or published."""


class WriteError(BackupperError):
    """Raised when an object or the realized filters cannot be written."""


class BackupCancelledError(BackupperError):
    """Raised when a backup run is cancelled before completion."""
