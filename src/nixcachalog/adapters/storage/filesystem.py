"""Filesystem tarball source for local mirrors and offline use."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from nixcachalog.core.exceptions import StorageAccessError, StorageNotFoundError


if TYPE_CHECKING:
    from nixcachalog.core.ports import ProgressCallback


# Chunk size for reading files (64KB)
_CHUNK_SIZE = 64 * 1024


class FilesystemStorage:
    """Reads tarballs from the local filesystem.

    Implements StoragePort. Useful for registry mirrors on disk and
    for testing without network access.
    """

    def read(self, source: str, progress: ProgressCallback | None = None) -> bytes:
        """Read a tarball with progress reporting.

        Args:
            source: Path to the file (absolute or relative).
            progress: Optional callback function(bytes_read, total_bytes).

        Returns:
            The file contents.

        Raises:
            StorageNotFoundError: If the file does not exist.
            StorageAccessError: If the file cannot be read.
        """
        path = Path(source)
        try:
            total_size = path.stat().st_size
            chunks: list[bytes] = []
            bytes_read = 0
            with path.open("rb") as f:
                for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
                    chunks.append(chunk)
                    bytes_read += len(chunk)
                    if progress:
                        progress(bytes_read, total_size)
        except FileNotFoundError as e:
            raise StorageNotFoundError(
                f"File not found: {source}",
                source=source,
                cause=e,
            ) from e
        except PermissionError as e:
            raise StorageAccessError(
                f"Permission denied: {source}",
                source=source,
                cause=e,
            ) from e

        return b"".join(chunks)
