"""Rich-based progress reporter for terminal output."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TaskID,
    TextColumn,
    TransferSpeedColumn,
)


if TYPE_CHECKING:
    from types import TracebackType

    from rich.console import Console

    from nixcachalog.core.models import Locator
    from nixcachalog.core.ports import ProgressCallback


class RichProgressReporter:
    """Download bars plus cache hit/miss counts for a bulk fetch.

    Implements both ProgressReporter and FetchReporter. Safe to share
    between fetch threads.

    Example:
        with RichProgressReporter() as reporter:
            fetcher = NpmSemverFetcher(..., progress=reporter, reporter=reporter)
            fetcher.fetch_all(requests)
        print(reporter.hits, reporter.misses)
    """

    def __init__(self, console: Console | None = None) -> None:
        """Initialize the progress display.

        Args:
            console: Optional rich Console to render to (stderr by default).
        """
        self._progress = Progress(
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
            console=console,
            transient=True,
        )
        self._tasks: dict[str, TaskID] = {}
        self._lock = threading.Lock()
        self._started = False
        self.hits = 0
        self.misses = 0

    def __enter__(self) -> RichProgressReporter:
        """Start the progress display."""
        self._progress.start()
        self._started = True
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Stop the progress display."""
        self._progress.stop()
        self._started = False

    def start_task(self, name: str, total: int) -> ProgressCallback:
        """Start a download bar.

        Args:
            name: The locator being downloaded.
            total: Expected size in bytes, 0 when unknown.

        Returns:
            A callback to update progress.
        """
        with self._lock:
            if not self._started:
                self._progress.start()
                self._started = True
            task_id = self._progress.add_task(name, total=total or None)
            self._tasks[name] = task_id

        def callback(downloaded: int, total_bytes: int) -> None:
            self._progress.update(
                task_id, completed=downloaded, total=total_bytes or None
            )

        return callback

    def finish_task(self, name: str) -> None:
        """Remove the bar of a finished download."""
        with self._lock:
            task_id = self._tasks.pop(name, None)
        if task_id is not None:
            self._progress.remove_task(task_id)

    def report_cache_hit(self, locator: Locator) -> None:
        """Count a package served from the store."""
        _ = locator
        with self._lock:
            self.hits += 1

    def report_cache_miss(self, locator: Locator) -> None:
        """Count a package that had to be downloaded."""
        _ = locator
        with self._lock:
            self.misses += 1
