"""packsync - self-updating file synchronization for pack installations."""

from .api import PackClient
from .config import UpdaterConfig
from .exceptions import (
    ConfigError,
    DownloadError,
    FingerprintError,
    IncompatibleManifestError,
    ManifestError,
    ManifestFetchError,
    NetworkError,
    PackSyncError,
    PreconditionError,
    SyncWriteError,
    TransportError,
)
from .manifest import Manifest, load_manifest, save_manifest
from .utils import encode_relative_path

__all__ = [
    "PackClient",
    "UpdaterConfig",
    "ConfigError",
    "DownloadError",
    "FingerprintError",
    "IncompatibleManifestError",
    "ManifestError",
    "ManifestFetchError",
    "NetworkError",
    "PackSyncError",
    "PreconditionError",
    "SyncWriteError",
    "TransportError",
    "Manifest",
    "load_manifest",
    "save_manifest",
    "encode_relative_path",
]
