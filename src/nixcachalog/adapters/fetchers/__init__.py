"""Package fetchers combining a tarball source with the store cache."""

from nixcachalog.adapters.fetchers.npm import NpmSemverFetcher


__all__ = ["NpmSemverFetcher"]
