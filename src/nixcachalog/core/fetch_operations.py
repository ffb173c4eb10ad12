"""Bulk fetch implementation.

Fetchers delegate their fetch_all() here. Each package is fetched
independently; the failure of one is recorded and never aborts the rest.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING

from nixcachalog.core.exceptions import NixcachalogError
from nixcachalog.core.models import BulkFetchResult, Checksum, FetchResult, Locator


if TYPE_CHECKING:
    from nixcachalog.core.ports import ExecutorPort


logger = logging.getLogger(__name__)

FetchOne = Callable[[Locator, Checksum | str | None], FetchResult]


def fetch_all(
    fetch_one: FetchOne,
    requests: Mapping[Locator, Checksum | str | None],
    executor: ExecutorPort | None = None,
) -> BulkFetchResult:
    """Fetch many packages, sequentially or through an executor.

    Args:
        fetch_one: Fetches a single package given its expected checksum.
        requests: Locators mapped to their recorded checksum (or None).
        executor: Optional executor for concurrent fetches. Without one,
            packages are fetched one after another.

    Returns:
        BulkFetchResult with per-locator results and failures.

    Raises:
        Exception: Any non-library error from a fetch, after every result
            collected so far has been released.
    """
    bulk = BulkFetchResult()
    if not requests:
        return bulk

    def record(locator: Locator, outcome: FetchResult | Exception) -> None:
        if isinstance(outcome, Exception):
            logger.error("Failed to fetch %s: %s", locator, outcome)
            bulk.failures[locator] = outcome
        else:
            bulk.results[locator] = outcome

    if executor is None:
        try:
            for locator, checksum in requests.items():
                record(locator, _fetch_guarded(fetch_one, locator, checksum))
        except Exception:
            bulk.release_all()
            raise
        return bulk

    # Drain every future so that no opened archive is left unreleased.
    unexpected: Exception | None = None
    with executor:
        futures = {
            locator: executor.submit(_fetch_guarded, fetch_one, locator, checksum)
            for locator, checksum in requests.items()
        }
        for locator, future in futures.items():
            try:
                record(locator, future.result())
            except Exception as e:
                unexpected = unexpected or e

    if unexpected is not None:
        bulk.release_all()
        raise unexpected
    return bulk


def _fetch_guarded(
    fetch_one: FetchOne,
    locator: Locator,
    checksum: Checksum | str | None,
) -> FetchResult | Exception:
    """Run one fetch, returning library errors instead of raising them."""
    try:
        return fetch_one(locator, checksum)
    except NixcachalogError as e:
        return e
