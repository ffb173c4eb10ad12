"""npm registry fetcher backed by the Nix store cache."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from nixcachalog.config import DEFAULT_REGISTRY_URL
from nixcachalog.core.exceptions import StorageError
from nixcachalog.core.fetch_operations import fetch_all
from nixcachalog.core.ports import NullFetchReporter, NullProgressReporter


if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

    from nixcachalog.config import ToolConfig
    from nixcachalog.core.models import BulkFetchResult, Checksum, FetchResult, Locator
    from nixcachalog.core.ports import (
        ArchiveNormalizerPort,
        CommandRunner,
        ExecutorPort,
        FetchReporter,
        ProgressReporter,
        StoragePort,
    )
    from nixcachalog.core.services import NixStoreCache


logger = logging.getLogger(__name__)

# Directory npm tarballs unpack into; kept as-is in the normalized zip.
PACKAGE_PREFIX = "package/"


class NpmSemverFetcher:
    """Fetches npm packages, downloading only what the store lacks.

    On a miss the tarball is downloaded from the registry and repacked as
    a zip before the cache hashes and imports it.
    """

    def __init__(
        self,
        cache: NixStoreCache,
        storage: StoragePort,
        normalizer: ArchiveNormalizerPort,
        registry_url: str = DEFAULT_REGISTRY_URL,
        progress: ProgressReporter | None = None,
        reporter: FetchReporter | None = None,
    ) -> None:
        self._cache = cache
        self._storage = storage
        self._normalizer = normalizer
        self._registry_url = registry_url.rstrip("/")
        self._progress = progress or NullProgressReporter()
        self._reporter = reporter or NullFetchReporter()

    @classmethod
    def from_config(
        cls,
        config: ToolConfig,
        runner: CommandRunner | None = None,
        progress: ProgressReporter | None = None,
        reporter: FetchReporter | None = None,
    ) -> NpmSemverFetcher:
        """Create a fetcher wired to the real store, bsdtar and registry.

        Args:
            config: Tool locations, store directory and registry.
            runner: Command runner; defaults to SubprocessRunner.
            progress: Optional download progress reporter.
            reporter: Optional hit/miss reporter.

        Returns:
            NpmSemverFetcher using NixStore, BsdtarNormalizer and RouterStorage.
        """
        from nixcachalog.adapters.archive import BsdtarNormalizer
        from nixcachalog.adapters.process import SubprocessRunner
        from nixcachalog.adapters.storage import create_router
        from nixcachalog.adapters.store import NixStore
        from nixcachalog.core.services import NixStoreCache

        if runner is None:
            runner = SubprocessRunner()

        cache = NixStoreCache(
            store=NixStore(runner, nix_store_exe=config.nix_store_exe),
            store_dir=config.store_dir,
        )
        return cls(
            cache=cache,
            storage=create_router(timeout=config.http_timeout),
            normalizer=BsdtarNormalizer(config, runner),
            registry_url=config.registry_url,
            progress=progress,
            reporter=reporter,
        )

    def get_locator_url(self, locator: Locator) -> str:
        """Tarball URL of a locator on the registry.

        Scoped idents are escaped as `@scope%2fname`, which is what the
        public registry expects.
        """
        if locator.scope is not None:
            ident_url = f"/@{locator.scope}%2f{locator.name}"
        else:
            ident_url = f"/{locator.name}"
        return f"{self._registry_url}{ident_url}/-/{locator.name}-{locator.version}.tgz"

    def fetch(
        self,
        locator: Locator,
        expected_checksum: Checksum | str | None = None,
    ) -> FetchResult:
        """Fetch one package through the store.

        Args:
            locator: Package to fetch.
            expected_checksum: Checksum recorded by a previous run, if any.

        Returns:
            FetchResult whose files live under `package/` in the archive.
        """
        result = self._cache.fetch(
            locator,
            expected_checksum,
            loader=lambda: self.fetch_from_network(locator),
            reporter=self._reporter,
        )
        result.prefix_path = PACKAGE_PREFIX
        return result

    def fetch_all(
        self,
        requests: Mapping[Locator, Checksum | str | None],
        executor: ExecutorPort | None = None,
    ) -> BulkFetchResult:
        """Fetch many packages; one failure does not stop the others."""
        return fetch_all(self.fetch, requests, executor=executor)

    def fetch_from_network(self, locator: Locator) -> Path:
        """Download a tarball and normalize it to a zip.

        Some registries reject the `%2f` escape in scoped URLs, so a failed
        download is retried once with a plain `/`.

        Raises:
            StorageError: If both attempts fail.
            SubprocessError: If normalization fails.
        """
        url = self.get_locator_url(locator)
        name = str(locator)

        callback = self._progress.start_task(name, 0)
        try:
            try:
                raw = self._storage.read(url, callback)
            except StorageError as e:
                fallback_url = url.replace("%2f", "/")
                logger.warning("Download of %s failed (%s), retrying %s", url, e, fallback_url)
                raw = self._storage.read(fallback_url, callback)
        finally:
            self._progress.finish_task(name)

        return self._normalizer.normalize(raw)
