"""nixcachalog - A Nix-store-backed fetch cache for package tarballs.

This library predicts the Nix store path a package archive will get before
downloading it, and skips the download when that path already exists.
Downloads are normalized to zip so that Nix can reproduce them byte for
byte with `fetchurl`.

Example:
    >>> from nixcachalog import Locator, NpmSemverFetcher, ToolConfig
    >>> fetcher = NpmSemverFetcher.from_config(ToolConfig.from_env())
    >>> archive, release, checksum = fetcher.fetch(
    ...     Locator.parse("left-pad@npm:1.3.0")
    ... )  # doctest: +SKIP
"""

from nixcachalog.adapters.archive import SAFE_TIME, BsdtarNormalizer
from nixcachalog.adapters.executor import (
    SynchronousExecutor,
    ThreadPoolExecutorAdapter,
)
from nixcachalog.adapters.fetchers import NpmSemverFetcher
from nixcachalog.adapters.process import SubprocessRunner
from nixcachalog.adapters.storage import (
    FilesystemStorage,
    HttpStorage,
    RouterStorage,
    S3Storage,
    create_router,
)
from nixcachalog.adapters.store import NixStore
from nixcachalog.config import ToolConfig, resolve_nix_tools
from nixcachalog.core.exceptions import (
    ArchiveError,
    ConfigurationError,
    NixcachalogError,
    StorageAccessError,
    StorageError,
    StorageNotFoundError,
    StorePathMismatchError,
    SubprocessError,
)
from nixcachalog.core.hashing import (
    checksum_file,
    compress_hash,
    encode_base32,
    hash_to_sri,
)
from nixcachalog.core.models import (
    CACHE_KEY_NS,
    BulkFetchResult,
    CacheOutcome,
    Checksum,
    CommandResult,
    FetchResult,
    Locator,
)
from nixcachalog.core.ports import (
    ArchiveNormalizerPort,
    CommandRunner,
    FetchReporter,
    NullFetchReporter,
    NullProgressReporter,
    ProgressCallback,
    ProgressReporter,
    StoragePort,
    StorePort,
)
from nixcachalog.core.services import NixStoreCache
from nixcachalog.core.store_path import (
    compute_fixed_output_store_path,
    locator_derivation_name,
    sanitize_derivation_name,
)
from nixcachalog.progress import RichProgressReporter


__version__ = "0.1.0"

__all__ = [
    "CACHE_KEY_NS",
    "SAFE_TIME",
    "ArchiveError",
    "ArchiveNormalizerPort",
    "BsdtarNormalizer",
    "BulkFetchResult",
    "CacheOutcome",
    "Checksum",
    "CommandResult",
    "CommandRunner",
    "ConfigurationError",
    "FetchReporter",
    "FetchResult",
    "FilesystemStorage",
    "HttpStorage",
    "Locator",
    "NixStore",
    "NixStoreCache",
    "NixcachalogError",
    "NpmSemverFetcher",
    "NullFetchReporter",
    "NullProgressReporter",
    "ProgressCallback",
    "ProgressReporter",
    "RichProgressReporter",
    "RouterStorage",
    "S3Storage",
    "StorageAccessError",
    "StorageError",
    "StorageNotFoundError",
    "StoragePort",
    "StorePathMismatchError",
    "StorePort",
    "SubprocessError",
    "SubprocessRunner",
    "SynchronousExecutor",
    "ThreadPoolExecutorAdapter",
    "ToolConfig",
    "__version__",
    "checksum_file",
    "compress_hash",
    "compute_fixed_output_store_path",
    "encode_base32",
    "hash_to_sri",
    "locator_derivation_name",
    "resolve_nix_tools",
    "sanitize_derivation_name",
]
