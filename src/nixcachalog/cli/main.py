"""CLI commands for nixcachalog."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import typer

from nixcachalog.core.exceptions import NixcachalogError


app = typer.Typer(
    name="nixcachalog",
    help="Fetch package tarballs through the Nix store, skipping known downloads.",
    no_args_is_help=True,
)


def _configure_logging(verbose: bool) -> None:
    """Route library logs through rich on stderr."""
    from rich.console import Console
    from rich.logging import RichHandler

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _fail(error: NixcachalogError | ValueError) -> typer.Exit:
    """Print an error with its recovery hint and return the exit to raise."""
    typer.echo(f"Error: {error}", err=True)
    hint = getattr(error, "recovery_hint", None)
    if hint:
        typer.echo(f"Hint: {hint}", err=True)
    return typer.Exit(1)


def _load_checksums(path: Path) -> dict[str, str]:
    """Read a `{locator: checksum}` JSON file; a missing file is empty."""
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        typer.echo(f"Error: {path} is not valid JSON: {e}", err=True)
        raise typer.Exit(1) from None
    if not isinstance(data, dict):
        typer.echo(f"Error: {path} must contain a JSON object", err=True)
        raise typer.Exit(1)
    return {str(k): str(v) for k, v in data.items()}


@app.command(name="store-path")
def store_path(
    name: str = typer.Argument(..., help="Derivation name (sanitized as needed)."),
    checksum: str = typer.Argument(..., help="Hex digest, optionally nix.1/-prefixed."),
    algorithm: str = typer.Option(
        "sha512", "--algorithm", help="Algorithm the checksum was computed with."
    ),
    store_dir: Path | None = typer.Option(
        None, "--store-dir", help="Nix store directory (default: $NIX_STORE_DIR or /nix/store)."
    ),
) -> None:
    """Print the store path of a fixed-output download without fetching it."""
    from nixcachalog.config import ToolConfig
    from nixcachalog.core.store_path import (
        compute_fixed_output_store_path,
        sanitize_derivation_name,
    )

    config = ToolConfig.from_env().with_overrides(store_dir=store_dir)
    path = compute_fixed_output_store_path(
        sanitize_derivation_name(name),
        checksum,
        hash_algorithm=algorithm,
        store_dir=config.store_dir,
    )
    typer.echo(str(path))


@app.command()
def sanitize(
    raw: str = typer.Argument(..., help="Arbitrary name to turn into a derivation name."),
) -> None:
    """Print the sanitized derivation name for a string."""
    from nixcachalog.core.store_path import sanitize_derivation_name

    typer.echo(sanitize_derivation_name(raw))


@app.command()
def sri(
    checksum: str = typer.Argument(..., help="Hex digest, optionally nix.1/-prefixed."),
    algorithm: str = typer.Option("sha512", "--algorithm", help="Hash algorithm."),
) -> None:
    """Print a checksum as an SRI hash for use in fetchurl."""
    from nixcachalog.core.hashing import hash_to_sri

    try:
        typer.echo(hash_to_sri(checksum, algorithm))
    except ValueError as e:
        raise _fail(e) from None


@app.command()
def fetch(
    locators: list[str] = typer.Argument(
        ..., help="Locators to fetch, e.g. left-pad@npm:1.3.0."
    ),
    checksums: Path | None = typer.Option(
        None,
        "--checksums",
        "-c",
        help="JSON file mapping locators to checksums; updated after fetching.",
    ),
    jobs: int = typer.Option(4, "--jobs", "-j", min=1, help="Concurrent fetches."),
    store_dir: Path | None = typer.Option(None, "--store-dir", help="Nix store directory."),
    registry: str | None = typer.Option(None, "--registry", help="npm registry URL."),
    resolve_tools: bool = typer.Option(
        False,
        "--resolve-tools",
        help="Pin bsdtar to the libarchive build from <nixpkgs>.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output."),
) -> None:
    """Fetch packages into the Nix store and print their store paths."""
    from rich.console import Console

    from nixcachalog import (
        Locator,
        NpmSemverFetcher,
        RichProgressReporter,
        SubprocessRunner,
        SynchronousExecutor,
        ThreadPoolExecutorAdapter,
        ToolConfig,
        resolve_nix_tools,
    )

    _configure_logging(verbose)

    try:
        parsed = [Locator.parse(text) for text in locators]
        config = ToolConfig.from_env().with_overrides(
            store_dir=store_dir, registry_url=registry
        )
        runner = SubprocessRunner()
        if resolve_tools:
            config = resolve_nix_tools(config, runner)
    except (NixcachalogError, ValueError) as e:
        raise _fail(e) from None

    known = _load_checksums(checksums) if checksums else {}
    requests = {locator: known.get(str(locator)) for locator in parsed}

    executor = SynchronousExecutor() if jobs == 1 else ThreadPoolExecutorAdapter(jobs)
    with RichProgressReporter(console=Console(stderr=True)) as reporter:
        fetcher = NpmSemverFetcher.from_config(
            config, runner=runner, progress=reporter, reporter=reporter
        )
        bulk = fetcher.fetch_all(requests, executor=executor)

    for locator in parsed:
        result = bulk.results.get(locator)
        if result is not None:
            typer.echo(f"{locator} {result.checksum} {result.store_path}")
            known[str(locator)] = str(result.checksum)
    bulk.release_all()

    if checksums:
        checksums.write_text(json.dumps(known, indent=2, sort_keys=True) + "\n")

    typer.echo(
        f"{reporter.hits} cached, {reporter.misses} downloaded, "
        f"{len(bulk.failures)} failed",
        err=True,
    )

    if bulk.failures:
        for locator, error in bulk.failures.items():
            typer.echo(f"Error: {locator}: {error}", err=True)
            hint = getattr(error, "recovery_hint", None)
            if hint:
                typer.echo(f"Hint: {hint}", err=True)
        raise typer.Exit(1)


def main() -> None:
    """Entry point for the CLI."""
    app()
