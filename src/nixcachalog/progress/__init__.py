"""Progress reporting adapters."""

from nixcachalog.progress.rich_progress import RichProgressReporter


__all__ = ["RichProgressReporter"]
