"""Gitignore-style exclusion of files from fingerprinting and comparison.

Two ignore files are supported, both in the synced root: a *standard* one
shipped with the pack and a *custom* one owned by the user. They use the
usual gitignore syntax (``*.log``, ``logs/``, ``!keep.log``, ...) and are
applied in that order, so the custom file can re-include or further exclude
anything the standard file touched.

:meth:`IgnoreFilter.compile` walks the tree once and returns an
:class:`IgnoreSet`; the fingerprint walk then only does set lookups.
"""

import logging
import os
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import pathspec

from ..exceptions import FingerprintError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IgnoreSource:
    """One ordered set of ignore rules."""

    name: str
    """Label used in log messages (usually the file name)"""

    patterns: tuple[str, ...]
    """Raw gitignore lines, comments and blanks included"""

    path: Optional[Path] = None
    """File the rules were read from, if any"""

    @property
    def rules(self) -> list[str]:
        """Lines that carry a rule."""
        return [
            line
            for line in self.patterns
            if line.strip() and not line.lstrip().startswith("#")
        ]


def load_ignore_file(path: Path) -> IgnoreSource:
    """Read an ignore file into an IgnoreSource.

    Raises:
        FingerprintError: If the file exists but cannot be read
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise FingerprintError(f"Can't read ignore file {path}: {e}", str(path)) from e
    return IgnoreSource(name=path.name, patterns=tuple(text.splitlines()), path=path)


@dataclass(frozen=True)
class IgnoreSet:
    """Relative paths excluded from a walk of one root.

    ``directories`` holds directories the walk must not descend into,
    either because a rule excludes them or because nothing below them
    is included.
    """

    files: frozenset[str] = field(default_factory=frozenset)
    directories: frozenset[str] = field(default_factory=frozenset)

    def __contains__(self, relative_path: object) -> bool:
        return relative_path in self.files or relative_path in self.directories

    def __len__(self) -> int:
        return len(self.files) + len(self.directories)

    def prunes(self, relative_dir: str) -> bool:
        """Whether the walk should skip a directory entirely."""
        return relative_dir in self.directories


class IgnoreFilter:
    """Compiles ordered ignore sources into exclusion predicates.

    Examples:
        >>> f = IgnoreFilter([IgnoreSource("std", ("*.log", "!keep.log"))])
        >>> f.matches("debug.log"), f.matches("keep.log")
        (True, False)
    """

    def __init__(self, sources: Optional[Sequence[IgnoreSource]] = None):
        self.sources: tuple[IgnoreSource, ...] = tuple(sources or ())
        lines: list[str] = []
        for source in self.sources:
            lines.extend(source.rules)
        # One GitIgnoreSpec over all sources in order: the last matching rule wins,
        # which lets later sources override earlier ones.
        self._spec = pathspec.GitIgnoreSpec.from_lines(lines)
        self._has_rules = bool(lines)

    @classmethod
    def from_directory(cls, root: Path, filenames: Sequence[str]) -> "IgnoreFilter":
        """Load the named ignore files from ``root`` in order.

        Missing files are skipped; a root with none of them yields a
        filter that ignores nothing.
        """
        sources = []
        for filename in filenames:
            path = root / filename
            if path.is_file():
                logger.debug(f"Loading ignore rules from {path}")
                sources.append(load_ignore_file(path))
        return cls(sources)

    def __bool__(self) -> bool:
        return self._has_rules

    def matches(self, relative_path: str, is_dir: bool = False) -> bool:
        """Check one path against the rules.

        Used for comparison-time ignoring where the path may not exist
        locally. A file below an excluded directory is excluded too.
        """
        if not self._has_rules:
            return False
        if is_dir and not relative_path.endswith("/"):
            relative_path += "/"
        if self._spec.match_file(relative_path):
            return True
        # gitignore cannot re-include a file whose parent directory is excluded
        parts = relative_path.rstrip("/").split("/")
        for i in range(1, len(parts)):
            if self._spec.match_file("/".join(parts[:i]) + "/"):
                return True
        return False

    __call__ = matches

    def compile(self, root: Path, max_depth: int) -> IgnoreSet:
        """Walk ``root`` once and collect every excluded path.

        Args:
            root: Directory the rules are relative to
            max_depth: Deepest level to visit (same bound as the hash walk)

        Returns:
            IgnoreSet for the tree; empty when there are no rules

        Raises:
            FingerprintError: If a directory cannot be listed
        """
        if not self._has_rules:
            return IgnoreSet()

        files: set[str] = set()
        directories: set[str] = set()
        self._compile_dir(root, "", 0, max_depth, files, directories)
        logger.debug(
            f"Ignore rules exclude {len(files)} file(s) and "
            f"{len(directories)} director(ies) under {root}"
        )
        return IgnoreSet(frozenset(files), frozenset(directories))

    def _compile_dir(
        self,
        directory: Path,
        prefix: str,
        depth: int,
        max_depth: int,
        files: set[str],
        directories: set[str],
    ) -> bool:
        """Collect exclusions below one directory.

        Returns:
            True if at least one file below ``directory`` is included
        """
        if depth >= max_depth:
            return False

        has_included = False
        for entry in _scan(directory):
            relative_path = f"{prefix}{entry.name}"
            if entry.is_dir(follow_symlinks=False):
                if self._spec.match_file(relative_path + "/"):
                    directories.add(relative_path)
                    continue
                if self._compile_dir(
                    Path(entry.path),
                    relative_path + "/",
                    depth + 1,
                    max_depth,
                    files,
                    directories,
                ):
                    has_included = True
                else:
                    directories.add(relative_path)
            elif not _is_file(entry):
                # Not hashed, so it does not keep its parent directory alive
                continue
            elif self._spec.match_file(relative_path):
                files.add(relative_path)
            else:
                has_included = True
        return has_included


def _is_file(entry: os.DirEntry) -> bool:
    """Whether the hash walk treats an entry as a file (symlinks followed)."""
    try:
        return entry.is_file()
    except OSError as e:
        raise FingerprintError(
            f"Can't read entry {entry.path}: {e}", entry.path
        ) from e


def _scan(directory: Path) -> Iterator[os.DirEntry]:
    """List a directory, sorted by name.

    Raises:
        FingerprintError: If the directory cannot be read
    """
    try:
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as e:
        raise FingerprintError(
            f"Error traversing directory {directory}: {e}", str(directory)
        ) from e
    return iter(entries)
