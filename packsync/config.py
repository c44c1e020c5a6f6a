"""Deployment configuration for packsync.

All per-deployment constants (directory names, file names and URLs) live in
:class:`UpdaterConfig` so one build of the tool can serve several packs.
Values can be overridden with ``PACKSYNC_<FIELD>`` environment variables.
"""

import hashlib
import logging
import os
from dataclasses import dataclass, fields, replace
from typing import Any, Mapping, Optional
from urllib.parse import urlparse

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

ENV_PREFIX = "PACKSYNC_"

DEFAULT_TARGET_DIR = "MUSHclient"
DEFAULT_DIRECTORY_MARKERS = ("MUSHclient.exe", "worlds", "mushclient_prefs.sqlite")
DEFAULT_VERSION_FILENAME = "erion-pack.ver"
DEFAULT_MANIFEST_FILENAME = "erion-pack.update-manifest"
DEFAULT_STANDARD_IGNORE_FILENAME = "erion-pack-standard.update-ignore"
DEFAULT_CUSTOM_IGNORE_FILENAME = "erion-pack-custom.update-ignore"
DEFAULT_MANIFEST_URL = (
    "https://gitlab.com/erion1/soundpack/raw/master/erion-pack.update-manifest"
)
DEFAULT_BASE_FILE_URL = "https://gitlab.com/erion1/soundpack/raw/master/MUSHclient/"
DEFAULT_HASH_ALGORITHM = "blake2b"
DEFAULT_JOBS = 2
DEFAULT_MAX_DEPTH = 10
DEFAULT_TIMEOUT = 60.0


@dataclass(frozen=True)
class UpdaterConfig:
    """Settings for one deployment of the updater."""

    target_dir: str = DEFAULT_TARGET_DIR
    """Directory name identifying the installation root"""

    directory_markers: tuple[str, ...] = DEFAULT_DIRECTORY_MARKERS
    """Entries whose presence identifies the installation root"""

    version_filename: str = DEFAULT_VERSION_FILENAME
    manifest_filename: str = DEFAULT_MANIFEST_FILENAME
    standard_ignore_filename: str = DEFAULT_STANDARD_IGNORE_FILENAME
    custom_ignore_filename: str = DEFAULT_CUSTOM_IGNORE_FILENAME

    manifest_url: str = DEFAULT_MANIFEST_URL
    """URL of the published manifest"""

    base_file_url: str = DEFAULT_BASE_FILE_URL
    """URL that encoded relative paths are appended to"""

    hash_algorithm: str = DEFAULT_HASH_ALGORITHM
    """hashlib algorithm used for every fingerprint in the process"""

    jobs: int = DEFAULT_JOBS
    """Number of hashing workers"""

    max_depth: int = DEFAULT_MAX_DEPTH
    """Deepest directory level walked below the root"""

    timeout: float = DEFAULT_TIMEOUT
    """HTTP timeout in seconds"""

    @property
    def ignore_filenames(self) -> tuple[str, str]:
        """Ignore file names in the order they are applied."""
        return (self.standard_ignore_filename, self.custom_ignore_filename)

    def with_overrides(self, **overrides: Any) -> "UpdaterConfig":
        """Return a copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes)

    def validate(self) -> "UpdaterConfig":
        """Check the configuration and return it unchanged.

        Raises:
            ConfigError: If any setting is unusable
        """
        for name in ("manifest_url", "base_file_url"):
            value = getattr(self, name)
            parsed = urlparse(value)
            if parsed.scheme not in {"http", "https"} or not parsed.netloc:
                raise ConfigError(
                    f"{name} must include scheme and host (got {value!r})"
                )
        if self.jobs < 1:
            raise ConfigError(f"jobs must be at least 1 (got {self.jobs})")
        if self.max_depth < 0:
            raise ConfigError(f"max_depth must not be negative (got {self.max_depth})")
        # shake_* digests need an explicit length and cannot be used here
        if (
            self.hash_algorithm not in hashlib.algorithms_available
            or self.hash_algorithm.startswith("shake_")
        ):
            raise ConfigError(f"Unknown hash algorithm: {self.hash_algorithm}")
        for name in (
            "target_dir",
            "version_filename",
            "manifest_filename",
            "standard_ignore_filename",
            "custom_ignore_filename",
        ):
            if not getattr(self, name):
                raise ConfigError(f"{name} must not be empty")
        return self

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "UpdaterConfig":
        """Build a configuration from defaults and PACKSYNC_* variables.

        Args:
            environ: Environment mapping (defaults to os.environ)

        Returns:
            UpdaterConfig instance

        Raises:
            ConfigError: If a numeric variable cannot be parsed
        """
        if environ is None:
            environ = os.environ

        values: dict[str, Any] = {}
        for f in fields(cls):
            key = ENV_PREFIX + f.name.upper()
            raw = environ.get(key)
            if raw is None or raw == "":
                continue
            logger.debug("Config override from %s", key)
            if f.name == "directory_markers":
                values[f.name] = tuple(m.strip() for m in raw.split(",") if m.strip())
            elif f.name in ("jobs", "max_depth"):
                try:
                    values[f.name] = int(raw)
                except ValueError as e:
                    raise ConfigError(f"{key} must be an integer (got {raw!r})") from e
            elif f.name == "timeout":
                try:
                    values[f.name] = float(raw)
                except ValueError as e:
                    raise ConfigError(f"{key} must be a number (got {raw!r})") from e
            else:
                values[f.name] = raw
        return cls(**values)
