"""Exceptions raised by packsync."""

from typing import Optional


class PackSyncError(Exception):
    """Base exception for all packsync errors."""


class ConfigError(PackSyncError):
    """Raised when the updater configuration is invalid."""


class PreconditionError(PackSyncError):
    """Raised when the tool is not run from a recognizable install root."""


class FingerprintError(PackSyncError):
    """Raised when a file or directory cannot be read while hashing."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class ManifestError(PackSyncError):
    """Raised when a manifest body or manifest file is malformed."""


class IncompatibleManifestError(PackSyncError):
    """Raised when two manifests were built with different hash settings."""


class TransportError(PackSyncError):
    """Base exception for HTTP failures."""


class NetworkError(TransportError):
    """Raised when the connection itself fails."""


class ManifestFetchError(TransportError):
    """Raised when the remote manifest cannot be retrieved."""


class DownloadError(TransportError):
    """Raised when a single file cannot be downloaded."""

    def __init__(self, message: str, relative_path: Optional[str] = None):
        super().__init__(message)
        self.relative_path = relative_path


class SyncWriteError(PackSyncError):
    """Raised when a downloaded file cannot be written into place.

    Attributes:
        relative_path: Manifest path that was being written
    """

    def __init__(self, message: str, relative_path: str):
        super().__init__(message)
        self.relative_path = relative_path
