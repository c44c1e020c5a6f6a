"""HTTP client for the published pack manifest and pack files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

import httpx

from .config import DEFAULT_BASE_FILE_URL, DEFAULT_MANIFEST_URL, DEFAULT_TIMEOUT
from .exceptions import (
    DownloadError,
    ManifestError,
    ManifestFetchError,
    NetworkError,
    SyncWriteError,
)
from .manifest import Manifest
from .utils import DEFAULT_CHUNK_SIZE, join_url

logger = logging.getLogger(__name__)


class PackClient:
    """Client for the remote pack repository.

    Requests are never retried: an update needs a known-good baseline, so
    any failure is reported to the caller straight away.
    """

    def __init__(
        self,
        manifest_url: str | None = None,
        base_file_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the pack client.

        Args:
            manifest_url: URL of the published manifest
            base_file_url: URL that relative file paths are appended to
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.manifest_url = manifest_url or DEFAULT_MANIFEST_URL
        self.base_file_url = base_file_url or DEFAULT_BASE_FILE_URL
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
            self._client = None

    def __enter__(self) -> PackClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def file_url(self, relative_path: str) -> str:
        """URL of a single pack file."""
        return join_url(self.base_file_url, relative_path)

    # =========================
    # Manifest
    # =========================

    def fetch_manifest(self) -> Manifest:
        """Download and parse the published manifest.

        Returns:
            The remote Manifest

        Raises:
            ManifestFetchError: If the server answers with a non-2xx status
                or the body is not a manifest
            NetworkError: If the request could not be completed
        """
        client = self._get_client()
        logger.debug("Fetching manifest from %s", self.manifest_url)
        try:
            response = client.get(self.manifest_url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ManifestFetchError(
                "Can't retrieve the manifest file needed to update: "
                f"server returned status code {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise NetworkError(
                f"Can't retrieve the manifest file needed to update: {e}"
            ) from e

        try:
            manifest = Manifest.from_data(response.json())
        except ValueError as e:
            raise ManifestFetchError(
                "Error parsing downloaded manifest file: invalid JSON"
            ) from e
        except ManifestError as e:
            raise ManifestFetchError(f"Error parsing downloaded manifest file: {e}") from e

        logger.debug("Remote manifest has %d entries", len(manifest))
        return manifest

    # =========================
    # Download Operations
    # =========================

    def download_file(
        self,
        relative_path: str,
        output_path: Path,
        progress_callback: Callable[[int, int], None] | None = None,
    ) -> int:
        """Stream a pack file to a local path.

        The caller owns ``output_path``; it is created or truncated here and
        left in place even if the download fails part way.

        Args:
            relative_path: Manifest path of the file
            output_path: Where to write the bytes
            progress_callback: Optional callback function(bytes_downloaded, total_bytes)

        Returns:
            Number of bytes written

        Raises:
            DownloadError: If the server answers with a non-2xx status
            NetworkError: If the connection fails
            SyncWriteError: If the local file cannot be written
        """
        url = self.file_url(relative_path)
        client = self._get_client()
        logger.debug("Downloading %s from %s", relative_path, url)

        try:
            with client.stream("GET", url) as response:
                response.raise_for_status()
                total_size = _content_length(response)
                bytes_downloaded = 0

                with open(output_path, "wb") as f:
                    for chunk in response.iter_bytes(chunk_size=DEFAULT_CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
                            bytes_downloaded += len(chunk)
                            if progress_callback:
                                progress_callback(bytes_downloaded, total_size)

                return bytes_downloaded

        except httpx.HTTPStatusError as e:
            raise DownloadError(
                f"Download of {relative_path} failed: "
                f"server returned status code {e.response.status_code}",
                relative_path=relative_path,
            ) from e
        except httpx.RequestError as e:
            raise NetworkError(
                f"Network error during download of {relative_path}: {e}"
            ) from e
        except OSError as e:
            raise SyncWriteError(
                f"Failed to write {output_path}: {e}", relative_path=relative_path
            ) from e


def _content_length(response: httpx.Response) -> int:
    """Declared body size, or 0 if the header is missing or malformed."""
    try:
        return max(0, int(response.headers.get("Content-Length", 0)))
    except ValueError:
        logger.debug(
            "Ignoring bad Content-Length %r", response.headers.get("Content-Length")
        )
        return 0
