"""Tarball source adapters."""

from nixcachalog.adapters.storage.filesystem import FilesystemStorage
from nixcachalog.adapters.storage.http import HttpStorage
from nixcachalog.adapters.storage.router import RouterStorage, create_router
from nixcachalog.adapters.storage.s3 import S3Storage


__all__ = [
    "FilesystemStorage",
    "HttpStorage",
    "RouterStorage",
    "S3Storage",
    "create_router",
]
