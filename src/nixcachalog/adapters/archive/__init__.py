"""Archive normalization adapters."""

from nixcachalog.adapters.archive.bsdtar import SAFE_TIME, BsdtarNormalizer


__all__ = ["SAFE_TIME", "BsdtarNormalizer"]
