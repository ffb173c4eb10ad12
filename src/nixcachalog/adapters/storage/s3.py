"""S3 tarball source using boto3, for registry mirrors kept in a bucket."""

from __future__ import annotations

from typing import TYPE_CHECKING

import boto3
from botocore.exceptions import ClientError

from nixcachalog.core.exceptions import (
    StorageAccessError,
    StorageError,
    StorageNotFoundError,
)


if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client

    from nixcachalog.core.ports import ProgressCallback


# Chunk size for streaming downloads (64KB)
_CHUNK_SIZE = 64 * 1024

_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NoSuchBucket"})
_ACCESS_CODES = frozenset({"403", "AccessDenied"})


def split_s3_uri(uri: str) -> tuple[str, str]:
    """Split `s3://bucket/key` into bucket and key.

    Raises:
        ValueError: If the URI has another scheme or no key.
    """
    if not uri.startswith("s3://"):
        raise ValueError(f"Invalid S3 URI: {uri}")
    bucket, _, key = uri.removeprefix("s3://").partition("/")
    if not bucket or not key:
        raise ValueError(f"Invalid S3 URI (missing key): {uri}")
    return bucket, key


class S3Storage:
    """Reads tarballs from an S3 mirror of the registry.

    Implements StoragePort. The mirror uses the registry's own paths as
    keys, so `s3://bucket/prefix` can stand in for the registry URL.
    """

    def __init__(self, client: S3Client | None = None) -> None:
        """Initialize S3 storage.

        Args:
            client: Optional boto3 S3 client. If not provided, creates a default client.
        """
        self._client = client or boto3.client("s3")

    def read(self, source: str, progress: ProgressCallback | None = None) -> bytes:
        """Download an object body, reporting progress per chunk.

        Raises:
            StorageNotFoundError: If the bucket or key does not exist.
            StorageAccessError: If access is denied.
            StorageError: For other S3 errors.
            ValueError: If source is not an s3:// URI with a key.
        """
        bucket, key = split_s3_uri(source)

        try:
            response = self._client.get_object(Bucket=bucket, Key=key)
        except ClientError as e:
            raise self._translate_client_error(e, source) from e

        total = response.get("ContentLength", 0)
        body = response["Body"]
        data = bytearray()
        try:
            for chunk in body.iter_chunks(_CHUNK_SIZE):
                data += chunk
                if progress:
                    progress(len(data), total)
        finally:
            body.close()

        return bytes(data)

    def _translate_client_error(self, error: ClientError, source: str) -> StorageError:
        """Map a botocore ClientError onto the storage error hierarchy."""
        code = error.response.get("Error", {}).get("Code", "")

        if code in _NOT_FOUND_CODES:
            return StorageNotFoundError(f"No tarball at {source}", source=source, cause=error)
        if code in _ACCESS_CODES:
            return StorageAccessError(f"Access denied: {source}", source=source, cause=error)
        return StorageError(f"S3 error ({code}) reading {source}", source=source, cause=error)
