"""HTTP tarball source using requests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import requests

from nixcachalog.core.exceptions import (
    StorageAccessError,
    StorageError,
    StorageNotFoundError,
)


if TYPE_CHECKING:
    from nixcachalog.core.ports import ProgressCallback


# Chunk size for streaming downloads (64KB)
_CHUNK_SIZE = 64 * 1024


class HttpStorage:
    """Storage adapter for HTTP(S) registries.

    Implements StoragePort with streaming GET requests. Timeouts are
    enforced here; retries are left to the caller.
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        timeout: float = 60.0,
    ) -> None:
        """Initialize HTTP storage.

        Args:
            session: Optional requests session. If not provided, creates one.
            timeout: Connect and read timeout in seconds.
        """
        self._session = session or requests.Session()
        self._timeout = timeout

    def read(self, source: str, progress: ProgressCallback | None = None) -> bytes:
        """Download a tarball with progress reporting.

        Args:
            source: http:// or https:// URL.
            progress: Optional callback function(bytes_downloaded, total_bytes).

        Returns:
            The response body.

        Raises:
            StorageNotFoundError: On 404/410.
            StorageAccessError: On 401/403.
            StorageError: On any other HTTP or connection error.
        """
        try:
            with self._session.get(source, stream=True, timeout=self._timeout) as response:
                self._raise_for_status(response, source)

                total_size = int(response.headers.get("Content-Length") or 0)
                chunks: list[bytes] = []
                bytes_downloaded = 0
                for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                    if not chunk:
                        continue
                    chunks.append(chunk)
                    bytes_downloaded += len(chunk)
                    if progress:
                        progress(bytes_downloaded, total_size)
        except requests.RequestException as e:
            raise StorageError(
                f"Request failed for {source}: {e}",
                source=source,
                cause=e,
            ) from e

        return b"".join(chunks)

    def _raise_for_status(self, response: requests.Response, source: str) -> None:
        """Translate an HTTP error status to a domain exception."""
        status = response.status_code
        if status < 400:
            return

        if status in (404, 410):
            raise StorageNotFoundError(f"Not found ({status}): {source}", source=source)

        if status in (401, 403):
            raise StorageAccessError(f"Access denied ({status}): {source}", source=source)

        raise StorageError(f"HTTP error ({status}): {source}", source=source)
