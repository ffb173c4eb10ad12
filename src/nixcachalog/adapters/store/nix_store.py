"""nix-store adapter implementing StorePort."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from nixcachalog.core.exceptions import SubprocessError


if TYPE_CHECKING:
    from nixcachalog.core.ports import CommandRunner


logger = logging.getLogger(__name__)


class NixStore:
    """The Nix store, driven through the nix-store command.

    Imports are atomic on the store's side: a path either does not exist or
    exists complete and immutable, so existence is the completion marker.
    """

    def __init__(self, runner: CommandRunner, nix_store_exe: str = "nix-store") -> None:
        """Initialize the store adapter.

        Args:
            runner: Command runner used to invoke nix-store.
            nix_store_exe: nix-store executable.
        """
        self._runner = runner
        self._nix_store_exe = nix_store_exe

    def contains(self, store_path: Path) -> bool:
        """Check whether a store path exists."""
        return store_path.exists()

    def add_fixed(self, path: Path, hash_algorithm: str) -> Path:
        """Import a file with `nix-store --add-fixed`.

        The command runs inside the file's directory with a relative
        argument, so the store path name is exactly the file name.

        Args:
            path: File to import.
            hash_algorithm: Content hash algorithm to declare.

        Returns:
            The store path printed by nix-store.

        Raises:
            SubprocessError: If nix-store fails or prints nothing.
        """
        command = [self._nix_store_exe, "--add-fixed", hash_algorithm, f"./{path.name}"]
        result = self._runner.run(command, cwd=path.parent)

        output = result.stdout.strip()
        if not output:
            raise SubprocessError(
                f"{self._nix_store_exe} printed no store path for {path.name}",
                command=command,
                returncode=result.returncode,
                stderr=result.stderr,
            )

        logger.debug("nix-store added %s as %s", path.name, output)
        return Path(output)
