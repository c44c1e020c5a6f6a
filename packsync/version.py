"""Date-based pack version counter (``year.month.day.patch``)."""

import logging
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Version:
    """A pack version such as ``2017.12.10.1``.

    The patch number counts releases made on the same day and restarts
    at 1 whenever the date changes.
    """

    year: int
    month: int
    day: int
    patch: int = 1

    @classmethod
    def parse(cls, version_string: str) -> "Version":
        """Parse a version string.

        Args:
            version_string: String such as "2017.12.10.1"

        Returns:
            Version instance

        Raises:
            ValueError: If the string is not four dot-separated integers
        """
        elements = version_string.strip().split(".")
        if len(elements) != 4:
            raise ValueError(f"Invalid version string: {version_string!r}")
        try:
            year, month, day, patch = (int(e.strip()) for e in elements)
        except ValueError as e:
            raise ValueError(f"Invalid version string: {version_string!r}") from e
        return cls(year=year, month=month, day=day, patch=patch)

    @classmethod
    def today(cls, today: Optional[date] = None) -> "Version":
        """Version for the current date with patch number 1."""
        today = today or date.today()
        return cls(year=today.year, month=today.month, day=today.day, patch=1)

    def bumped(self, today: Optional[date] = None) -> "Version":
        """Return the next version.

        Moves to today's date with patch 1, or increments the patch number
        when this version already carries today's date.
        """
        current = Version.today(today)
        if (self.year, self.month, self.day) != (
            current.year,
            current.month,
            current.day,
        ):
            return current
        return Version(self.year, self.month, self.day, self.patch + 1)

    def __str__(self) -> str:
        return f"{self.year}.{self.month}.{self.day}.{self.patch}"


def read_version_file(path: Path) -> Optional[Version]:
    """Read a version file.

    Returns:
        The stored Version, or None if the file is missing or empty

    Raises:
        ValueError: If the file holds something that is not a version
    """
    if not path.exists():
        return None
    content = path.read_text(encoding="utf-8").strip()
    if not content:
        return None
    return Version.parse(content)


def write_version_file(path: Path, version: Version) -> None:
    """Overwrite a version file with a bare version string."""
    path.write_text(str(version), encoding="utf-8")
    logger.debug("Wrote version %s to %s", version, path)
