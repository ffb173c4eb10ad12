"""Core domain models for nixcachalog.

These models are pure Python dataclasses with no I/O dependencies.
They represent package identities, checksums and fetch outcomes.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Self


if TYPE_CHECKING:
    import zipfile
    from collections.abc import Callable, Iterator
    from pathlib import Path


CACHE_KEY_NS = "nix.1/"

_HEX_RE = re.compile(r"^[0-9a-f]+$")


@dataclass(frozen=True, slots=True)
class Locator:
    """Identity of a package artifact: ident plus resolved reference.

    Attributes:
        name: Package name without scope (e.g., "left-pad").
        reference: Resolved source reference (e.g., "npm:1.3.0").
        scope: Optional scope without the leading "@" (e.g., "types").

    Example:
        >>> Locator.parse("@types/node@npm:18.0.0")
        Locator(name='node', reference='npm:18.0.0', scope='types')
        >>> str(Locator(name="left-pad", reference="npm:1.3.0"))
        'left-pad@npm:1.3.0'
    """

    name: str
    reference: str
    scope: str | None = None

    def __post_init__(self) -> None:
        """Validate locator fields after initialization."""
        if not self.name:
            raise ValueError("Locator name cannot be empty")
        if not self.reference:
            raise ValueError("Locator reference cannot be empty")
        if self.scope is not None and not self.scope:
            raise ValueError("Locator scope cannot be empty (use None)")

    @classmethod
    def parse(cls, text: str) -> Self:
        """Parse a stringified locator (`@scope/name@reference` or `name@reference`).

        Args:
            text: The locator string.

        Returns:
            The parsed Locator.

        Raises:
            ValueError: If the string is not a valid locator.
        """
        scope: str | None = None
        rest = text
        if rest.startswith("@"):
            scope, sep, rest = rest[1:].partition("/")
            if not sep or not scope:
                raise ValueError(f"Invalid scoped locator: {text!r}")

        name, sep, reference = rest.partition("@")
        if not sep:
            raise ValueError(f"Locator has no reference: {text!r}")
        return cls(name=name, reference=reference, scope=scope)

    @property
    def ident(self) -> str:
        """The package ident (`@scope/name` or `name`)."""
        if self.scope is not None:
            return f"@{self.scope}/{self.name}"
        return self.name

    @property
    def version(self) -> str:
        """The reference with any `npm:` protocol stripped."""
        if self.reference.startswith("npm:"):
            return self.reference[len("npm:") :]
        return self.reference

    def stringify(self) -> str:
        """Return the canonical string form used for derivation names."""
        return f"{self.ident}@{self.reference}"

    def __str__(self) -> str:
        return self.stringify()


@dataclass(frozen=True, slots=True)
class Checksum:
    """A content digest, optionally marked as produced by this cache.

    The external form is `nix.1/<hex>` for cache-produced checksums and a
    bare `<hex>` for externally supplied ones (e.g., from a lockfile).

    Attributes:
        digest: Lowercase hex digest.
        namespace: Cache namespace prefix, or None for external checksums.
        algorithm: Hash algorithm the digest was computed with.
    """

    digest: str
    namespace: str | None = None
    algorithm: str = "sha512"

    def __post_init__(self) -> None:
        """Validate the digest is non-empty lowercase hex."""
        if not self.digest:
            raise ValueError("Checksum digest cannot be empty")
        if not _HEX_RE.match(self.digest):
            raise ValueError(f"Checksum digest must be lowercase hex: {self.digest!r}")

    @classmethod
    def parse(cls, text: str, algorithm: str = "sha512") -> Self:
        """Parse the external string form of a checksum.

        Args:
            text: `nix.1/<hex>` or `<hex>`.
            algorithm: Hash algorithm to record.

        Returns:
            The parsed Checksum.
        """
        if text.startswith(CACHE_KEY_NS):
            return cls(
                digest=text[len(CACHE_KEY_NS) :],
                namespace=CACHE_KEY_NS,
                algorithm=algorithm,
            )
        return cls(digest=text, algorithm=algorithm)

    @property
    def is_cache_produced(self) -> bool:
        """Whether this checksum carries the cache namespace."""
        return self.namespace == CACHE_KEY_NS

    def __str__(self) -> str:
        return f"{self.namespace or ''}{self.digest}"


class CacheOutcome(enum.Enum):
    """Whether a fetch was served from the store or had to download."""

    HIT = "hit"
    MISS = "miss"


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Captured result of an external command."""

    args: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""


@dataclass(slots=True)
class FetchResult:
    """A package archive opened from the store.

    Iterating yields `(archive, release, checksum)`, so callers can unpack
    the result directly.

    Attributes:
        archive: Read-only zip archive at the store path.
        release: Closes the archive. Safe to call more than once.
        checksum: The checksum actually used; persist it for future hits.
        store_path: Absolute path of the archive in the store.
        outcome: Whether the fetch was a hit or a miss.
        prefix_path: Directory inside the archive holding the package files.
    """

    archive: zipfile.ZipFile
    release: Callable[[], None]
    checksum: Checksum
    store_path: Path
    outcome: CacheOutcome
    prefix_path: str = ""

    def __iter__(self) -> Iterator[Any]:
        return iter((self.archive, self.release, self.checksum))


@dataclass(slots=True)
class BulkFetchResult:
    """Results of fetching many packages; failures don't abort siblings.

    Attributes:
        results: Successful fetches keyed by locator.
        failures: The error raised for each failed locator.
    """

    results: dict[Locator, FetchResult] = field(default_factory=dict)
    failures: dict[Locator, Exception] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """True when no package failed."""
        return not self.failures

    def release_all(self) -> None:
        """Release every archive handle held by the results."""
        for result in self.results.values():
            result.release()
