"""Core domain module for nixcachalog.

This module contains the store path derivation, domain models and port
definitions. Apart from hashing files it has no I/O of its own and can be
tested in isolation.
"""

from nixcachalog.core.hashing import compress_hash, encode_base32, hash_to_sri
from nixcachalog.core.models import CacheOutcome, Checksum, FetchResult, Locator
from nixcachalog.core.ports import (
    ArchiveNormalizerPort,
    CommandRunner,
    StoragePort,
    StorePort,
)
from nixcachalog.core.store_path import (
    compute_fixed_output_store_path,
    locator_derivation_name,
    sanitize_derivation_name,
)


__all__ = [
    "ArchiveNormalizerPort",
    "CacheOutcome",
    "Checksum",
    "CommandRunner",
    "FetchResult",
    "Locator",
    "StoragePort",
    "StorePort",
    "compress_hash",
    "compute_fixed_output_store_path",
    "encode_base32",
    "hash_to_sri",
    "locator_derivation_name",
    "sanitize_derivation_name",
]
