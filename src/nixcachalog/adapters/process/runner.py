"""Subprocess adapter implementing CommandRunner."""

from __future__ import annotations

import logging
import subprocess
from typing import TYPE_CHECKING

from nixcachalog.core.exceptions import SubprocessError
from nixcachalog.core.models import CommandResult


if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from pathlib import Path


logger = logging.getLogger(__name__)


class SubprocessRunner:
    """Runs external tools with subprocess, capturing text output.

    A nonzero exit status is always an error: the tools this library drives
    (bsdtar, nix-store, nix-build) report failure only that way.
    """

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        """Run a command to completion.

        Args:
            args: Executable followed by its arguments.
            cwd: Working directory, defaults to the current one.
            env: Full environment for the process, defaults to inheriting.

        Returns:
            CommandResult with captured stdout and stderr.

        Raises:
            SubprocessError: If the command cannot start or exits nonzero.
        """
        argv = [str(arg) for arg in args]
        logger.debug("Running %s", " ".join(argv))
        try:
            completed = subprocess.run(
                argv,
                cwd=cwd,
                env=dict(env) if env is not None else None,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            raise SubprocessError(
                f"Could not run {argv[0]}: {e}",
                command=argv,
                cause=e,
            ) from e

        if completed.returncode != 0:
            raise SubprocessError(
                f"{argv[0]} exited with status {completed.returncode}: "
                f"{completed.stderr.strip()}",
                command=argv,
                returncode=completed.returncode,
                stderr=completed.stderr,
            )

        return CommandResult(
            args=argv,
            returncode=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
        )
