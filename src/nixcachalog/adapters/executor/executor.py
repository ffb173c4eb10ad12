"""Executor adapters implementing ExecutorPort for bulk package fetches."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from collections.abc import Callable


class SynchronousExecutor:
    """Runs each submitted fetch immediately in the calling thread.

    Handy in tests: results come back in submission order and exceptions
    surface from Future.result() exactly as with a thread pool.
    """

    def submit(
        self,
        fn: Callable[..., object],
        *args: object,
        **kwargs: object,
    ) -> Future[object]:
        """Call fn now and return an already-completed Future."""
        future: Future[object] = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future

    def __enter__(self) -> SynchronousExecutor:
        return self

    def __exit__(
        self, exc_type: object, exc_val: object, exc_tb: object
    ) -> object | None:
        return None


class ThreadPoolExecutorAdapter:
    """Fetches packages on a thread pool.

    Every stage of a fetch (store lookup, download, bsdtar, nix-store) is
    I/O or a subprocess, so threads overlap them well. The pool is shut
    down when the context manager exits.
    """

    def __init__(self, max_workers: int | None = None) -> None:
        """Create the pool.

        Args:
            max_workers: Number of concurrent fetches. None uses the
                concurrent.futures default.
        """
        self._pool = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="nixcachalog-fetch"
        )

    def submit(
        self,
        fn: Callable[..., object],
        *args: object,
        **kwargs: object,
    ) -> Future[object]:
        """Schedule fn on the pool."""
        return self._pool.submit(fn, *args, **kwargs)

    def __enter__(self) -> ThreadPoolExecutorAdapter:
        return self

    def __exit__(
        self, exc_type: object, exc_val: object, exc_tb: object
    ) -> object | None:
        self._pool.shutdown(wait=True)
        return None
