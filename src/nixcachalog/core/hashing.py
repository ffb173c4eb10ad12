"""Nix-compatible hash compression and base32 encoding.

The store identifies paths with a 160-bit digest rendered in its own base32
dialect. The alphabet omits `e`, `o`, `u` and `t`, and bits are consumed
starting from the last byte of the buffer, so this is not RFC 4648 base32.
"""

from __future__ import annotations

import base64
import hashlib
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from pathlib import Path


BASE32_CHARSET = "0123456789abcdfghijklmnpqrsvwxyz"

# Chunk size for hashing files (64KB)
_CHUNK_SIZE = 64 * 1024


def compute_hash(algorithm: str, data: str | bytes) -> bytes:
    """Return the raw digest of data; strings are hashed as UTF-8."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.new(algorithm, data).digest()


def compress_hash(digest: bytes, size: int) -> bytes:
    """Fold a digest into `size` bytes by XOR-ing byte i into position i % size.

    Args:
        digest: Digest of any length.
        size: Output length in bytes.

    Returns:
        The compressed digest.
    """
    result = bytearray(size)
    for idx, byte in enumerate(digest):
        result[idx % size] ^= byte
    return bytes(result)


def encode_base32(buf: bytes) -> str:
    """Encode bytes with the store's base32 dialect.

    The buffer is read as one bit string starting at the most significant
    bit of the last byte. Each 5-bit group becomes one character; a shorter
    final group is read as a plain binary number.

    Example:
        >>> encode_base32(bytes([1, 2]))
        '0801'
    """
    bits = "".join(format(byte, "08b") for byte in reversed(buf))
    return "".join(
        BASE32_CHARSET[int(bits[pos : pos + 5], 2)] for pos in range(0, len(bits), 5)
    )


def checksum_file(path: Path, algorithm: str = "sha512") -> str:
    """Compute the hex digest of a file's contents.

    Args:
        path: File to hash.
        algorithm: hashlib algorithm name.

    Returns:
        Lowercase hex digest.
    """
    digest = hashlib.new(algorithm)
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def hash_to_sri(hex_digest: str, algorithm: str = "sha512") -> str:
    """Convert a hex digest to a Subresource Integrity string.

    Args:
        hex_digest: Hex digest, optionally carrying the cache namespace prefix.
        algorithm: Hash algorithm name used as the SRI prefix.

    Returns:
        `<algorithm>-<base64 digest>`, the form accepted by `fetchurl`.
    """
    from nixcachalog.core.models import CACHE_KEY_NS

    if hex_digest.startswith(CACHE_KEY_NS):
        hex_digest = hex_digest[len(CACHE_KEY_NS) :]
    b64 = base64.b64encode(bytes.fromhex(hex_digest)).decode("ascii")
    return f"{algorithm}-{b64}"
