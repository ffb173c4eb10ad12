"""Executor adapters for concurrent fetches."""

from nixcachalog.adapters.executor.executor import (
    SynchronousExecutor,
    ThreadPoolExecutorAdapter,
)


__all__ = ["SynchronousExecutor", "ThreadPoolExecutorAdapter"]
