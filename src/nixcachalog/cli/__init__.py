"""CLI for nixcachalog."""

from nixcachalog.cli.main import app, main


__all__ = ["app", "main"]
