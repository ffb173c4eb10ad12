"""Basic usage: fetch npm packages through the Nix store.

The first fetch downloads the tarball, repacks it as a zip and imports it
into the store. The checksum it returns is all a later run needs to find
the package again without touching the network.
"""

import json
from pathlib import Path

from nixcachalog import (
    Locator,
    NpmSemverFetcher,
    RichProgressReporter,
    ThreadPoolExecutorAdapter,
    ToolConfig,
)


CHECKSUMS = Path("./nix-checksums.json")

# Reads NIX_STORE_DIR and NIXCACHALOG_* from the environment
config = ToolConfig.from_env()

known = json.loads(CHECKSUMS.read_text()) if CHECKSUMS.exists() else {}
locators = [
    Locator.parse("left-pad@npm:1.3.0"),
    Locator.parse("@types/node@npm:18.0.0"),
]

with RichProgressReporter() as reporter:
    fetcher = NpmSemverFetcher.from_config(config, progress=reporter, reporter=reporter)

    # Fetch one package and unpack the result directly
    archive, release, checksum = fetcher.fetch(locators[0], known.get(str(locators[0])))
    print(archive.namelist())
    release()

    # Fetch several at once; failures are collected per locator
    bulk = fetcher.fetch_all(
        {locator: known.get(str(locator)) for locator in locators},
        executor=ThreadPoolExecutorAdapter(max_workers=4),
    )

for locator, result in bulk.results.items():
    print(f"{locator}: {result.store_path}")
    known[str(locator)] = str(result.checksum)
bulk.release_all()

CHECKSUMS.write_text(json.dumps(known, indent=2, sort_keys=True))
print(f"{reporter.hits} cached, {reporter.misses} downloaded")
