"""Manifest model and the persisted manifest file.

A manifest maps POSIX relative file paths to content fingerprints. On disk
and on the wire it is a bare JSON object, for example::

    {"scripts/main.lua": "9f86d081...", "worlds/erion.mcl": "60303ae2..."}
"""

import json
import logging
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any, Optional

from .exceptions import ManifestError

logger = logging.getLogger(__name__)


class Manifest(Mapping[str, str]):
    """Read-only mapping of relative path to fingerprint.

    Iteration is always in lexicographic path order so serialization and
    anything derived from a manifest is reproducible.
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: Optional[Mapping[str, str]] = None):
        items = dict(entries or {})
        self._entries: dict[str, str] = {k: items[k] for k in sorted(items)}

    def __getitem__(self, path: str) -> str:
        return self._entries[path]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Manifest):
            return self._entries == other._entries
        if isinstance(other, Mapping):
            return self._entries == dict(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(tuple(self._entries.items()))

    def __repr__(self) -> str:
        return f"Manifest({len(self._entries)} entries)"

    def digest_lengths(self) -> set[int]:
        """Distinct fingerprint lengths present in this manifest."""
        return {len(v) for v in self._entries.values()}

    def to_dict(self) -> dict[str, str]:
        """Return a plain dict copy (sorted)."""
        return dict(self._entries)

    def to_json(self) -> str:
        """Serialize to the manifest file format."""
        return json.dumps(self._entries, indent=2, sort_keys=True, ensure_ascii=False)

    @classmethod
    def from_data(cls, data: Any) -> "Manifest":
        """Build a manifest from decoded JSON.

        Args:
            data: Decoded JSON value

        Returns:
            Manifest instance

        Raises:
            ManifestError: If data is not an object of string to string
        """
        if not isinstance(data, dict):
            raise ManifestError(
                f"Manifest must be a JSON object, got {type(data).__name__}"
            )
        for path, digest in data.items():
            if not isinstance(digest, str):
                raise ManifestError(f"Fingerprint for {path!r} is not a string")
            if not path or path.startswith("/"):
                raise ManifestError(f"Invalid manifest path: {path!r}")
        return cls(data)

    @classmethod
    def from_json(cls, text: str) -> "Manifest":
        """Parse the manifest file format.

        Raises:
            ManifestError: If text is not valid JSON or not a manifest
        """
        try:
            data = json.loads(text)
        except ValueError as e:
            raise ManifestError(f"Invalid manifest JSON: {e}") from e
        return cls.from_data(data)


def load_manifest(path: Path) -> Manifest:
    """Read a persisted manifest.

    Raises:
        ManifestError: If the file is missing, unreadable or malformed
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ManifestError(f"Can't read manifest {path}: {e}") from e
    manifest = Manifest.from_json(text)
    logger.debug(f"Loaded manifest with {len(manifest)} entries from {path}")
    return manifest


def save_manifest(path: Path, manifest: Manifest) -> None:
    """Write a manifest to disk as UTF-8 JSON.

    Raises:
        ManifestError: If the file cannot be written
    """
    try:
        path.write_text(manifest.to_json(), encoding="utf-8")
    except OSError as e:
        raise ManifestError(f"Couldn't write manifest to {path}: {e}") from e
    logger.debug(f"Saved manifest with {len(manifest)} entries to {path}")
