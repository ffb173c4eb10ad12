"""Content-addressed store adapters."""

from nixcachalog.adapters.store.nix_store import NixStore


__all__ = ["NixStore"]
