"""Configuration for nixcachalog.

Tool locations and the store directory are resolved once and passed
explicitly to the adapters that need them.
"""

from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Self

from nixcachalog.core.exceptions import ConfigurationError
from nixcachalog.core.store_path import DEFAULT_STORE_DIR


if TYPE_CHECKING:
    from collections.abc import Mapping

    from nixcachalog.core.ports import CommandRunner


logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_URL = "https://registry.yarnpkg.com"


@dataclass(frozen=True, slots=True)
class ToolConfig:
    """Locations of external tools and services.

    Attributes:
        bsdtar_exe: bsdtar executable used to repack tarballs as zips.
        nix_store_exe: nix-store executable used for imports.
        nix_build_exe: nix-build executable used to pin tools from nixpkgs.
        store_dir: Root of the Nix store.
        registry_url: npm registry base URL, without trailing slash.
        http_timeout: Timeout in seconds for registry requests.

    Example:
        >>> config = ToolConfig.from_env({"NIX_STORE_DIR": "/tmp/store"})
        >>> config.store_dir
        PosixPath('/tmp/store')
    """

    bsdtar_exe: str = "bsdtar"
    nix_store_exe: str = "nix-store"
    nix_build_exe: str = "nix-build"
    store_dir: Path = field(default=DEFAULT_STORE_DIR)
    registry_url: str = DEFAULT_REGISTRY_URL
    http_timeout: float = 60.0

    def __post_init__(self) -> None:
        """Normalize the store directory and registry URL."""
        object.__setattr__(self, "store_dir", Path(self.store_dir))
        object.__setattr__(self, "registry_url", self.registry_url.rstrip("/"))
        if self.http_timeout <= 0:
            raise ConfigurationError(
                f"http_timeout must be positive, got {self.http_timeout}"
            )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Self:
        """Build a config from environment variables.

        Reads NIX_STORE_DIR, NIXCACHALOG_BSDTAR, NIXCACHALOG_NIX_STORE,
        NIXCACHALOG_NIX_BUILD, NIXCACHALOG_REGISTRY and
        NIXCACHALOG_HTTP_TIMEOUT. Unset variables keep their defaults.

        Raises:
            ConfigurationError: If NIXCACHALOG_HTTP_TIMEOUT is not a number.
        """
        if environ is None:
            environ = os.environ

        overrides: dict[str, object] = {}
        if value := environ.get("NIX_STORE_DIR"):
            overrides["store_dir"] = Path(value)
        if value := environ.get("NIXCACHALOG_BSDTAR"):
            overrides["bsdtar_exe"] = value
        if value := environ.get("NIXCACHALOG_NIX_STORE"):
            overrides["nix_store_exe"] = value
        if value := environ.get("NIXCACHALOG_NIX_BUILD"):
            overrides["nix_build_exe"] = value
        if value := environ.get("NIXCACHALOG_REGISTRY"):
            overrides["registry_url"] = value
        if value := environ.get("NIXCACHALOG_HTTP_TIMEOUT"):
            try:
                overrides["http_timeout"] = float(value)
            except ValueError as e:
                raise ConfigurationError(
                    f"NIXCACHALOG_HTTP_TIMEOUT must be a number, got {value!r}"
                ) from e

        return cls(**overrides)  # type: ignore[arg-type]

    def with_overrides(self, **changes: object) -> Self:
        """Return a copy with the given fields replaced; None values are ignored."""
        return dataclasses.replace(
            self, **{k: v for k, v in changes.items() if v is not None}
        )


def get_nix_package_path(name: str, config: ToolConfig, runner: CommandRunner) -> Path:
    """Build a nixpkgs attribute and return its output path.

    Args:
        name: Attribute name in `<nixpkgs>` (e.g., "libarchive").
        config: Config providing the nix-build executable.
        runner: Command runner.

    Returns:
        The store path of the built package.

    Raises:
        SubprocessError: If nix-build fails.
        ConfigurationError: If nix-build printed no path.
    """
    result = runner.run(
        [config.nix_build_exe, "<nixpkgs>", "-A", name, "--no-out-link"],
        cwd=Path("/"),
    )
    out = result.stdout.strip()
    if not out:
        raise ConfigurationError(f"nix-build printed no output path for '{name}'")
    return Path(out.splitlines()[-1])


def resolve_nix_tools(config: ToolConfig, runner: CommandRunner) -> ToolConfig:
    """Pin bsdtar to the libarchive build from nixpkgs.

    The zip must come out of the same bsdtar that the `fetchurl` postFetch
    hook runs when Nix re-fetches the package.

    Returns:
        A new ToolConfig with bsdtar_exe pointing into the store.
    """
    libarchive = get_nix_package_path("libarchive", config, runner)
    bsdtar = libarchive / "bin" / "bsdtar"
    logger.debug("Using bsdtar from %s", bsdtar)
    return dataclasses.replace(config, bsdtar_exe=str(bsdtar))
