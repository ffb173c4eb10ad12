"""Core domain services for nixcachalog."""

from __future__ import annotations

import contextlib
import logging
import zipfile
from pathlib import Path
from typing import TYPE_CHECKING

from nixcachalog.core.exceptions import StorePathMismatchError
from nixcachalog.core.hashing import checksum_file
from nixcachalog.core.models import (
    CACHE_KEY_NS,
    CacheOutcome,
    Checksum,
    FetchResult,
)
from nixcachalog.core.ports import NullFetchReporter
from nixcachalog.core.store_path import (
    DEFAULT_STORE_DIR,
    compute_fixed_output_store_path,
    locator_derivation_name,
)


if TYPE_CHECKING:
    from nixcachalog.core.models import Locator
    from nixcachalog.core.ports import ArchiveLoader, FetchReporter, StorePort


logger = logging.getLogger(__name__)


class NixStoreCache:
    """Fetches package zips through the Nix store, skipping known downloads.

    The store path of every package is predicted from its locator and
    checksum. When it already exists the loader is never called; otherwise
    the loader's archive is hashed, imported as a fixed-output path and
    checked against the prediction.

    No lock is taken. Concurrent fetches of the same package rely on the
    store's import being atomic: a second importer finds the path present
    and discards its copy.
    """

    def __init__(
        self,
        store: StorePort,
        store_dir: Path | str = DEFAULT_STORE_DIR,
        hash_algorithm: str = "sha512",
    ) -> None:
        self._store = store
        self._store_dir = Path(store_dir)
        self._hash_algorithm = hash_algorithm

    @property
    def store_dir(self) -> Path:
        """Root directory of the store."""
        return self._store_dir

    def predict_store_path(self, locator: Locator, checksum: Checksum | str) -> Path:
        """Store path the package will have for a given checksum."""
        return compute_fixed_output_store_path(
            locator_derivation_name(locator),
            checksum,
            self._hash_algorithm,
            self._store_dir,
        )

    def fetch(
        self,
        locator: Locator,
        expected_checksum: Checksum | str | None,
        loader: ArchiveLoader,
        reporter: FetchReporter | None = None,
    ) -> FetchResult:
        """Fetch a package zip from the store, or invoke the loader.

        Args:
            locator: Package to fetch.
            expected_checksum: Previously recorded checksum, or None. A
                string this cache cannot parse is treated as None.
            loader: Produces a normalized archive on a cache miss.
            reporter: Optional receiver of hit/miss notifications.

        Returns:
            FetchResult holding the read-only archive, its release function
            and the checksum actually used.

        Raises:
            StorePathMismatchError: If the store imported to another path.
            SubprocessError: If importing into the store fails.
        """
        if reporter is None:
            reporter = NullFetchReporter()

        if isinstance(expected_checksum, str):
            expected_checksum = self._parse_expected(expected_checksum)

        derivation_name = locator_derivation_name(locator)

        store_path: Path | None = None
        if expected_checksum is not None:
            store_path = compute_fixed_output_store_path(
                derivation_name,
                expected_checksum,
                self._hash_algorithm,
                self._store_dir,
            )
            logger.debug("Predicted %s for %s", store_path, locator)

        if store_path is not None and self._store.contains(store_path):
            assert expected_checksum is not None
            logger.info("Cache hit for %s", locator)
            reporter.report_cache_hit(locator)
            checksum = expected_checksum
            outcome = CacheOutcome.HIT
        else:
            logger.info("Cache miss for %s", locator)
            reporter.report_cache_miss(locator)
            checksum, store_path = self._load_into_store(
                locator, derivation_name, loader
            )
            outcome = CacheOutcome.MISS

        return self._open(store_path, checksum, outcome)

    def _parse_expected(self, text: str) -> Checksum | None:
        """Parse a recorded checksum; foreign formats count as no checksum.

        Lockfiles written by other tools carry keys such as `8/<hex>` or
        `10c0/<hex>`. Those can never name a path this cache created, so
        they lead to a plain miss.
        """
        try:
            return Checksum.parse(text, self._hash_algorithm)
        except ValueError:
            logger.debug("Ignoring unrecognized checksum %r", text)
            return None

    def _load_into_store(
        self,
        locator: Locator,
        derivation_name: str,
        loader: ArchiveLoader,
    ) -> tuple[Checksum, Path]:
        """Run the loader and import its archive unless already stored."""
        result_path = loader()
        temp_dir = result_path.parent

        try:
            checksum = Checksum(
                digest=checksum_file(result_path, self._hash_algorithm),
                namespace=CACHE_KEY_NS,
                algorithm=self._hash_algorithm,
            )
            store_path = compute_fixed_output_store_path(
                derivation_name, checksum, self._hash_algorithm, self._store_dir
            )

            if self._store.contains(store_path):
                logger.warning(
                    "%s already in store at %s, discarding download",
                    locator,
                    store_path,
                )
                return checksum, store_path

            # The store takes the derivation name from the file name.
            load_path = temp_dir / derivation_name
            result_path.rename(load_path)
            result_path = load_path

            imported = self._store.add_fixed(load_path, self._hash_algorithm)
            if imported != store_path:
                raise StorePathMismatchError(expected=store_path, actual=imported)
            logger.info("Imported %s as %s", locator, store_path)
        finally:
            result_path.unlink(missing_ok=True)
            with contextlib.suppress(OSError):
                temp_dir.rmdir()

        return checksum, store_path

    def _open(
        self, store_path: Path, checksum: Checksum, outcome: CacheOutcome
    ) -> FetchResult:
        archive = zipfile.ZipFile(store_path, "r")

        def release() -> None:
            archive.close()

        return FetchResult(
            archive=archive,
            release=release,
            checksum=checksum,
            store_path=store_path,
            outcome=outcome,
        )
