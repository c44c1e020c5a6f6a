"""Utility functions for packsync."""

import hashlib
from pathlib import Path
from typing import Any
from urllib.parse import quote

# =============================================================================
# Constants for file operations
# =============================================================================

# Read size used when hashing and streaming downloads (64 KB)
DEFAULT_CHUNK_SIZE: int = 64 * 1024


# =============================================================================
# Size formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"


# =============================================================================
# URL utilities
# =============================================================================


def encode_relative_path(relative_path: str) -> str:
    """Percent-encode a manifest path for use in a URL.

    Every ``/``-separated segment is quoted on its own and the segments are
    joined again with ``/``, so the separators themselves are never escaped.

    Args:
        relative_path: POSIX relative path from a manifest

    Returns:
        URL-safe path

    Examples:
        >>> encode_relative_path("a/b c/d.txt")
        'a/b%20c/d.txt'
        >>> encode_relative_path("sounds/50%.ogg")
        'sounds/50%25.ogg'
    """
    return "/".join(quote(segment, safe="") for segment in relative_path.split("/"))


def join_url(base_url: str, relative_path: str) -> str:
    """Append an encoded relative path to a base URL."""
    return f"{base_url.rstrip('/')}/{encode_relative_path(relative_path)}"


# =============================================================================
# Hash calculation utilities
# =============================================================================


def new_hasher(algorithm: str) -> Any:
    """Create a hashlib object for the configured algorithm.

    Raises:
        ValueError: If hashlib does not know the algorithm
    """
    return hashlib.new(algorithm)


def hash_file(path: Path, algorithm: str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> str:
    """Compute the lowercase hex digest of a file's bytes.

    Args:
        path: File to hash
        algorithm: hashlib algorithm name
        chunk_size: Bytes read per iteration

    Returns:
        Hex digest string

    Raises:
        OSError: If the file cannot be read
    """
    hasher = new_hasher(algorithm)
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


def hash_bytes(data: bytes, algorithm: str) -> str:
    """Compute the lowercase hex digest of an in-memory payload."""
    hasher = new_hasher(algorithm)
    hasher.update(data)
    return hasher.hexdigest()
