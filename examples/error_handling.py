"""Error handling patterns with recovery hints.

This example demonstrates how to handle common errors and use
the recovery_hint property to provide actionable guidance.
"""

from nixcachalog import (
    FetchResult,
    Locator,
    NixcachalogError,
    NpmSemverFetcher,
    StorageNotFoundError,
    StorePathMismatchError,
    SubprocessError,
    ToolConfig,
)


fetcher = NpmSemverFetcher.from_config(ToolConfig.from_env())


# Pattern 1: A package missing from the registry
def fetch_or_none(fetcher: NpmSemverFetcher, text: str) -> FetchResult | None:
    """Fetch a package, returning None if the registry doesn't have it."""
    try:
        return fetcher.fetch(Locator.parse(text))
    except StorageNotFoundError as e:
        print(f"Tarball not found: {e.source}")
        print(f"Hint: {e.recovery_hint}")
        return None


# Pattern 2: bsdtar or nix-store failed
def fetch_reporting_tools(fetcher: NpmSemverFetcher, text: str) -> FetchResult | None:
    """Fetch a package, showing the failing command line."""
    try:
        return fetcher.fetch(Locator.parse(text))
    except SubprocessError as e:
        print(f"Command failed: {' '.join(e.command)}")
        if e.stderr:
            print(e.stderr)
        print(f"Hint: {e.recovery_hint}")
        return None


# Pattern 3: Catch-all for any library error
def fetch_safe(fetcher: NpmSemverFetcher, text: str) -> FetchResult | None:
    """Fetch a package with comprehensive error handling."""
    try:
        return fetcher.fetch(Locator.parse(text))
    except ValueError as e:
        print(f"Invalid locator: {e}")
        return None
    except StorePathMismatchError as e:
        # The store disagrees with the computed path; never retried
        print(f"Expected {e.expected}, store returned {e.actual}")
        return None
    except NixcachalogError as e:
        print(f"Error: {e}")
        if e.recovery_hint:
            print(f"Hint: {e.recovery_hint}")
        return None


if __name__ == "__main__":
    result = fetch_safe(fetcher, "left-pad@npm:1.3.0")
    if result is not None:
        print(result.store_path)
        result.release()
