"""bsdtar adapter implementing ArchiveNormalizerPort."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

from nixcachalog.core.exceptions import ArchiveError, SubprocessError


if TYPE_CHECKING:
    from nixcachalog.config import ToolConfig
    from nixcachalog.core.ports import CommandRunner


logger = logging.getLogger(__name__)

# Fixed mtime for the input tarball (1984-06-22T21:50:00Z)
SAFE_TIME = 456789000

_INPUT_NAME = "archive.tgz"
_OUTPUT_NAME = "archive.zip"


class BsdtarNormalizer:
    """Repacks npm tarballs as zip archives with bsdtar.

    This is the conversion a Nix `fetchurl` postFetch hook can replicate
    without any Node.js tooling, so a zip produced here hashes the same as
    the one Nix produces from the same tarball.

    Attributes:
        config: Tool configuration providing the bsdtar executable.
    """

    def __init__(self, config: ToolConfig, runner: CommandRunner) -> None:
        self.config = config
        self._runner = runner

    def normalize(self, raw: bytes) -> Path:
        """Convert a gzipped tarball to a zip archive.

        Args:
            raw: The downloaded tarball bytes.

        Returns:
            Path to the zip. It is the only file in a fresh temporary
            directory; the caller owns that directory.

        Raises:
            ArchiveError: If the tarball cannot be written to disk.
            SubprocessError: If bsdtar fails or writes no archive.
        """
        try:
            temp_dir = Path(tempfile.mkdtemp(prefix="nixcachalog-"))
        except OSError as e:
            raise ArchiveError(
                f"Cannot create a temporary directory: {e}",
                path=Path(tempfile.gettempdir()) / _INPUT_NAME,
                cause=e,
            ) from e
        tgz_path = temp_dir / _INPUT_NAME
        zip_path = temp_dir / _OUTPUT_NAME

        try:
            try:
                tgz_path.write_bytes(raw)
                os.utime(tgz_path, (SAFE_TIME, SAFE_TIME))
            except OSError as e:
                raise ArchiveError(
                    f"Cannot write tarball to {tgz_path}: {e}", path=tgz_path, cause=e
                ) from e

            command = [
                self.config.bsdtar_exe,
                "-cf",
                str(zip_path),
                "--format=zip",
                f"@{tgz_path}",
            ]
            self._runner.run(command, cwd=Path("/"), env={**os.environ, "TZ": "UTC"})
            tgz_path.unlink()

            if not zip_path.is_file():
                raise SubprocessError(
                    f"{self.config.bsdtar_exe} produced no archive at {zip_path}",
                    command=command,
                    returncode=0,
                )
        except BaseException:
            shutil.rmtree(temp_dir, ignore_errors=True)
            raise

        logger.debug("Normalized %d bytes into %s", len(raw), zip_path)
        return zip_path
