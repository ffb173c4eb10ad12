"""Scheme-based routing between tarball sources.

The registry URL decides where tarballs come from: an HTTP(S) registry,
an S3 mirror, or a directory on disk.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from urllib.parse import urlsplit

from nixcachalog.core.exceptions import ConfigurationError


if TYPE_CHECKING:
    from nixcachalog.core.ports import ProgressCallback, StoragePort


def parse_uri_scheme(uri: str) -> str | None:
    """Return the lowercased scheme of a source, or None for plain paths.

    Single-letter schemes are Windows drive letters and count as paths.
    """
    scheme = urlsplit(uri).scheme if "://" in uri else ""
    return scheme if len(scheme) > 1 else None


def strip_file_scheme(uri: str) -> str:
    """Turn a file:// URI into a plain path; other strings pass through."""
    return uri.removeprefix("file://")


class RouterStorage:
    """Dispatches each read to the backend registered for its scheme.

    Implements StoragePort. The `None` key serves plain paths.
    """

    def __init__(self, backends: dict[str | None, StoragePort]) -> None:
        self._backends = dict(backends)

    def read(self, source: str, progress: ProgressCallback | None = None) -> bytes:
        """Read a tarball through the backend for the source's scheme.

        Raises:
            ConfigurationError: If no backend handles the scheme.
        """
        scheme = parse_uri_scheme(source)
        backend = self._backends.get(scheme)
        if backend is None:
            where = f"'{scheme}'" if scheme else "local path"
            raise ConfigurationError(f"No storage backend registered for scheme {where}")
        if scheme == "file":
            source = strip_file_scheme(source)
        return backend.read(source, progress)


def create_router(
    session: Any | None = None,
    s3_client: Any | None = None,
    timeout: float = 60.0,
) -> RouterStorage:
    """Create a RouterStorage serving every supported registry location.

    Args:
        session: Optional requests session for HTTP(S).
        s3_client: Optional boto3 S3 client. Created lazily when first needed.
        timeout: HTTP timeout in seconds.

    Returns:
        RouterStorage for http, https, s3, file and plain paths.
    """
    from nixcachalog.adapters.storage import FilesystemStorage, HttpStorage

    local = FilesystemStorage()
    http = HttpStorage(session=session, timeout=timeout)
    return RouterStorage(
        backends={
            "http": http,
            "https": http,
            "s3": _LazyS3Storage(s3_client),
            "file": local,
            None: local,
        }
    )


class _LazyS3Storage:
    """Creates the boto3 client on the first s3:// read."""

    def __init__(self, client: Any | None) -> None:
        self._client = client
        self._storage: StoragePort | None = None

    def read(self, source: str, progress: ProgressCallback | None = None) -> bytes:
        if self._storage is None:
            from nixcachalog.adapters.storage import S3Storage

            self._storage = S3Storage(client=self._client)
        return self._storage.read(source, progress)
