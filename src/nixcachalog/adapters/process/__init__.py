"""External command adapters."""

from nixcachalog.adapters.process.runner import SubprocessRunner


__all__ = ["SubprocessRunner"]
