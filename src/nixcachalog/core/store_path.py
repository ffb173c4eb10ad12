"""Store path derivation for fixed-output downloads.

A fixed-output store path depends only on the derivation name, the content
hash and the store directory, so it can be predicted before downloading.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import TYPE_CHECKING

from nixcachalog.core.hashing import compress_hash, compute_hash, encode_base32
from nixcachalog.core.models import CACHE_KEY_NS, Checksum


if TYPE_CHECKING:
    from nixcachalog.core.models import Locator


DEFAULT_STORE_DIR = Path("/nix/store")

MAX_NAME_LENGTH = 207
UNKNOWN_NAME = "unknown"

# Size of the XOR-folded digest behind the 32-character path id
_STORE_HASH_BYTES = 20

_LEADING_DOTS_RE = re.compile(r"^\.+")
_INVALID_CHARS_RE = re.compile(r"[^a-zA-Z0-9+._?=-]+")


def compute_fixed_output_store_path(
    name: str,
    checksum: Checksum | str,
    hash_algorithm: str = "sha512",
    store_dir: Path | str = DEFAULT_STORE_DIR,
) -> Path:
    """Compute the store path of a flat fixed-output derivation.

    Args:
        name: Derivation name (already sanitized).
        checksum: Hex content digest, with or without the cache namespace.
        hash_algorithm: Algorithm the checksum was computed with.
        store_dir: Store root directory.

    Returns:
        `<store_dir>/<32-char id>-<name>`.

    Raises nothing: any deviation from the store's own scheme shows up later
    as a StorePathMismatchError when the artifact is imported.
    """
    if isinstance(checksum, Checksum):
        checksum = checksum.digest
    elif checksum.startswith(CACHE_KEY_NS):
        checksum = checksum[len(CACHE_KEY_NS) :]

    store_dir = Path(store_dir)

    inner_str = f"fixed:out:{hash_algorithm}:{checksum}:"
    inner_hash_hex = compute_hash("sha256", inner_str).hex()

    outer_str = f"output:out:sha256:{inner_hash_hex}:{store_dir}:{name}"
    outer_hash = compute_hash("sha256", outer_str)
    path_id = encode_base32(compress_hash(outer_hash, _STORE_HASH_BYTES))

    return store_dir / f"{path_id}-{name}"


def sanitize_derivation_name(name: str) -> str:
    """Turn an arbitrary string into a valid derivation name.

    Matches `lib.strings.sanitizeDerivationName` in Nixpkgs: leading dots
    are dropped, runs of disallowed characters become a single `-`, the
    result is cut to 207 characters and never empty.

    Example:
        >>> sanitize_derivation_name("@types/node@npm:18.0.0.zip")
        '-types-node-npm-18.0.0.zip'
    """
    name = _LEADING_DOTS_RE.sub("", name)
    name = _INVALID_CHARS_RE.sub("-", name)
    return name[:MAX_NAME_LENGTH] or UNKNOWN_NAME


def locator_derivation_name(locator: Locator) -> str:
    """Derivation name used for a locator's `fetchurl` zip."""
    return sanitize_derivation_name(f"{locator}.zip")
