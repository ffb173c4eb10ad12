"""Port interfaces for hexagonal architecture.

Ports define contracts that adapters must implement. The core domain
depends only on these protocols, never on concrete implementations.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Protocol, runtime_checkable


if TYPE_CHECKING:
    from concurrent.futures import Future
    from pathlib import Path

    from nixcachalog.core.models import CommandResult, Locator

ProgressCallback = Callable[[int, int], None]

# Produces a normalized archive in a temp dir of its own; called on a cache miss.
ArchiveLoader = Callable[[], "Path"]


@runtime_checkable
class StoragePort(Protocol):
    """Source of raw package tarballs (HTTP registry, S3 mirror, filesystem)."""

    def read(self, source: str, progress: ProgressCallback | None = None) -> bytes:
        """Download a tarball and return its bytes.

        Args:
            source: URL, S3 URI or local path.
            progress: Optional callback function(bytes_downloaded, total_bytes).

        Raises:
            StorageNotFoundError: If nothing exists at source.
            StorageAccessError: If access is denied.
            StorageError: For any other transfer failure.
        """
        ...


@runtime_checkable
class CommandRunner(Protocol):
    """Runs external commands, blocking until they exit."""

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        """Run a command and capture its output.

        Raises:
            SubprocessError: If the command exits nonzero or cannot start.
        """
        ...


@runtime_checkable
class ArchiveNormalizerPort(Protocol):
    """Repacks raw downloads into deterministically hashable archives."""

    def normalize(self, raw: bytes) -> Path:
        """Return the path of the normalized archive.

        The archive is the only file in a temporary directory owned by the
        caller from then on.
        """
        ...


@runtime_checkable
class StorePort(Protocol):
    """The external content-addressed store."""

    def contains(self, store_path: Path) -> bool:
        """Whether a store path exists. Existence implies completeness."""
        ...

    def add_fixed(self, path: Path, hash_algorithm: str) -> Path:
        """Import a file as flat fixed-output content.

        Args:
            path: File to import; its name becomes the derivation name.
            hash_algorithm: Algorithm to declare for the content hash.

        Returns:
            The store path the store assigned.
        """
        ...


@runtime_checkable
class ProgressReporter(Protocol):
    """Reports download progress to the user.

    The core domain uses this to report progress without depending
    on any specific UI library.
    """

    def start_task(self, name: str, total: int) -> ProgressCallback:
        """Start tracking a download task.

        Args:
            name: Human-readable name for the task (the locator).
            total: Total bytes to download, 0 if unknown.

        Returns:
            A ProgressCallback to call with (bytes_downloaded, total_bytes).
        """
        ...

    def finish_task(self, name: str) -> None:
        """Mark a task as complete."""
        ...


@runtime_checkable
class FetchReporter(Protocol):
    """Receives cache hit/miss notifications for each fetched package."""

    def report_cache_hit(self, locator: Locator) -> None:
        """The package was already in the store."""
        ...

    def report_cache_miss(self, locator: Locator) -> None:
        """The package has to be downloaded."""
        ...


class NullProgressReporter:
    """A ProgressReporter that produces no output."""

    def start_task(self, name: str, total: int) -> ProgressCallback:  # noqa: ARG002
        """Return a no-op callback."""
        return lambda _downloaded, _total: None

    def finish_task(self, name: str) -> None:
        """Do nothing."""
        _ = name


class NullFetchReporter:
    """A FetchReporter that ignores all notifications."""

    def report_cache_hit(self, locator: Locator) -> None:
        """Do nothing."""
        _ = locator

    def report_cache_miss(self, locator: Locator) -> None:
        """Do nothing."""
        _ = locator


@runtime_checkable
class ExecutorPort(Protocol):
    """Executor for running package fetches concurrently.

    Fetches are blocking calls; concurrency stays in the adapter layer and
    the core only submits work through this protocol.
    """

    def submit(
        self, fn: Callable[..., object], *args: object, **kwargs: object
    ) -> Future[object]:  # type: ignore[name-defined, unused-ignore]
        """Submit a function for execution and return its Future."""
        ...

    def __enter__(self) -> ExecutorPort:
        """Enter context manager."""
        ...

    def __exit__(
        self, exc_type: object, exc_val: object, exc_tb: object
    ) -> object | None:
        """Exit context manager."""
        ...
