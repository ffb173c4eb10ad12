"""Domain exceptions for nixcachalog.

All library errors inherit from NixcachalogError, allowing users to catch
any library exception with a single except clause. Each exception provides
a recovery_hint property with guidance on resolving the error.
"""

from __future__ import annotations

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path


class NixcachalogError(Exception):
    """Base class for all nixcachalog exceptions.

    Catch this to handle any error from the library.
    """

    @property
    def recovery_hint(self) -> str | None:
        """Optional guidance on how to resolve this error."""
        return None


class StorageError(NixcachalogError):
    """Base class for tarball source errors.

    Raised when downloading a package archive (HTTP, S3, filesystem) fails.

    Attributes:
        source: The URL/URI that caused the error.
        cause: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        source: str,
        cause: Exception | None = None,
    ) -> None:
        self.source = source
        self.cause = cause
        super().__init__(message)

    @property
    def recovery_hint(self) -> str:
        """Suggest checking connectivity to the source."""
        return f"Check network access to {self.source}"


class StorageNotFoundError(StorageError):
    """Raised when the requested archive doesn't exist at the source."""

    @property
    def recovery_hint(self) -> str:
        """Suggest verifying the locator."""
        return f"Verify the package exists: {self.source}"


class StorageAccessError(StorageError):
    """Raised when access is denied to the source (permissions, credentials)."""

    @property
    def recovery_hint(self) -> str:
        """Suggest checking credentials."""
        return "Check registry credentials and permissions"


class SubprocessError(NixcachalogError):
    """Raised when an external tool (bsdtar, nix-store) fails.

    Attributes:
        command: The command line that was run.
        returncode: Exit status, or None if the process never started.
        stderr: Captured standard error output.
        cause: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        command: Sequence[str],
        returncode: int | None = None,
        stderr: str = "",
        cause: Exception | None = None,
    ) -> None:
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr
        self.cause = cause
        super().__init__(message)

    @property
    def recovery_hint(self) -> str:
        """Point at the failing executable."""
        if self.returncode is None:
            return f"Make sure '{self.command[0]}' is installed and on PATH"
        return f"Re-run '{' '.join(self.command)}' manually to inspect its output"


class ArchiveError(NixcachalogError):
    """Raised when a downloaded tarball cannot be staged for repacking.

    Attributes:
        path: The file or directory being written.
        cause: The underlying OSError.
    """

    def __init__(self, message: str, path: Path, cause: OSError | None = None) -> None:
        self.path = path
        self.cause = cause
        super().__init__(message)

    @property
    def recovery_hint(self) -> str:
        """Suggest checking the temp directory."""
        return f"Check free space and permissions for {self.path.parent}"


class StorePathMismatchError(NixcachalogError):
    """Raised when nix-store imports an artifact under an unexpected path.

    This means the local store path derivation no longer agrees with the
    store. Nothing is retried.

    Attributes:
        expected: The locally computed store path.
        actual: The path reported by the store.
    """

    def __init__(self, expected: Path, actual: Path) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Assertion failed: nix-store path and computed path mismatch "
            f"(expected {expected}, got {actual})"
        )

    @property
    def recovery_hint(self) -> str:
        """Suggest checking the store directory configuration."""
        return "Check that the configured store directory matches the Nix store"


class ConfigurationError(NixcachalogError):
    """Raised for configuration problems (invalid settings, missing tools)."""

    pass
