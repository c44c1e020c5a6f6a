"""Manifest comparison logic for sync operations."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from ..exceptions import IncompatibleManifestError

logger = logging.getLogger(__name__)


class ChangeType(str, Enum):
    """Classification of a single path."""

    ADDED = "added"
    """Path exists remotely but not locally"""

    REMOVED = "removed"
    """Path exists locally but not remotely"""

    IGNORED = "ignored"
    """Path excluded from comparison"""

    MATCHES = "matches"
    """Path exists on both sides with the same fingerprint"""

    DIFFERS = "differs"
    """Path exists on both sides with different fingerprints"""


@dataclass(frozen=True)
class PathComparison:
    """Outcome of comparing one path."""

    relative_path: str
    change: ChangeType
    was_hash: Optional[str] = None
    """Local fingerprint (if the path exists locally)"""

    new_hash: Optional[str] = None
    """Remote fingerprint (if the path exists remotely)"""


@dataclass
class ComparisonResult:
    """Every path from both manifests, each in exactly one bucket.

    All buckets are in lexicographic path order.
    """

    added: list[PathComparison] = field(default_factory=list)
    removed: list[PathComparison] = field(default_factory=list)
    ignored: list[PathComparison] = field(default_factory=list)
    matches: list[PathComparison] = field(default_factory=list)
    differs: list[PathComparison] = field(default_factory=list)

    def bucket(self, change: ChangeType) -> list[PathComparison]:
        return {
            ChangeType.ADDED: self.added,
            ChangeType.REMOVED: self.removed,
            ChangeType.IGNORED: self.ignored,
            ChangeType.MATCHES: self.matches,
            ChangeType.DIFFERS: self.differs,
        }[change]

    @property
    def worklist(self) -> list[str]:
        """Paths to download: added and differing paths, sorted."""
        return sorted(c.relative_path for c in self.added + self.differs)

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.differs)

    def __len__(self) -> int:
        return (
            len(self.added)
            + len(self.removed)
            + len(self.ignored)
            + len(self.matches)
            + len(self.differs)
        )

    def counts(self) -> dict[str, int]:
        return {change.value: len(self.bucket(change)) for change in ChangeType}

    def to_dict(self) -> dict:
        """Summary suitable for JSON output."""
        return {
            "added": [c.relative_path for c in self.added],
            "removed": [c.relative_path for c in self.removed],
            "ignored": [c.relative_path for c in self.ignored],
            "modified": [
                {"path": c.relative_path, "was": c.was_hash, "new": c.new_hash}
                for c in self.differs
            ],
            "unchanged": len(self.matches),
        }


class ManifestComparator:
    """Compares a local manifest against a remote (desired) one."""

    def __init__(self, ignore: Optional[Callable[[str], bool]] = None):
        """Initialize the comparator.

        Args:
            ignore: Optional predicate; matching paths are classified as
                ignored instead of being compared
        """
        self.ignore = ignore

    def compare(
        self,
        local: Mapping[str, str],
        remote: Mapping[str, str],
    ) -> ComparisonResult:
        """Classify every path of both manifests.

        Args:
            local: Current fingerprints
            remote: Desired fingerprints

        Returns:
            ComparisonResult

        Raises:
            IncompatibleManifestError: If the fingerprints have different
                lengths, meaning the manifests were built with different
                hash settings
        """
        self._check_compatible(local, remote)

        result = ComparisonResult()
        all_paths = set(local.keys()) | set(remote.keys())

        for path in sorted(all_paths):
            comparison = self._compare_single_path(path, local.get(path), remote.get(path))
            result.bucket(comparison.change).append(comparison)

        logger.debug(
            "Compared %d path(s): %s",
            len(all_paths),
            ", ".join(f"{k}={v}" for k, v in result.counts().items()),
        )
        return result

    def _compare_single_path(
        self,
        path: str,
        was_hash: Optional[str],
        new_hash: Optional[str],
    ) -> PathComparison:
        if self.ignore is not None and self.ignore(path):
            change = ChangeType.IGNORED
        elif was_hash is None:
            change = ChangeType.ADDED
        elif new_hash is None:
            change = ChangeType.REMOVED
        elif was_hash == new_hash:
            change = ChangeType.MATCHES
        else:
            change = ChangeType.DIFFERS
            logger.debug(f"{path} differs: {was_hash} -> {new_hash}")

        return PathComparison(
            relative_path=path, change=change, was_hash=was_hash, new_hash=new_hash
        )

    @staticmethod
    def _check_compatible(local: Mapping[str, str], remote: Mapping[str, str]) -> None:
        lengths = {len(v) for v in local.values()} | {len(v) for v in remote.values()}
        if len(lengths) > 1:
            raise IncompatibleManifestError(
                "Error comparing hashes: hash lengths of the downloaded manifest "
                f"and locally-generated one differ ({sorted(lengths)})"
            )
