"""Pytest configuration and shared fixtures.

This module registers custom markers for CI job separation and provides
fakes for the external tools (bsdtar, nix-store, nix-build) and the
tarball source, so the fetch flow can run without Nix or a network.
"""

from __future__ import annotations

import io
import shutil
import tarfile
import time
import zipfile
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path

import pytest

from nixcachalog.core.exceptions import StorageNotFoundError, SubprocessError
from nixcachalog.core.hashing import checksum_file
from nixcachalog.core.models import CommandResult
from nixcachalog.core.ports import ProgressCallback
from nixcachalog.core.store_path import compute_fixed_output_store_path


# Fixed member mtime for test tarballs (2020-09-13T12:26:40Z)
TARBALL_MTIME = 1_600_000_000


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "core: Core models, hashing, and services")
    config.addinivalue_line("markers", "storage: Tarball source adapters")
    config.addinivalue_line("markers", "archive: Archive normalization")
    config.addinivalue_line("markers", "store: Nix store and subprocess adapters")
    config.addinivalue_line("markers", "fetcher: npm fetcher")
    config.addinivalue_line("markers", "progress: Rich progress integration")
    config.addinivalue_line("markers", "cli: CLI tests")
    config.addinivalue_line(
        "markers", "tra: Test Responsibility Anchor (TRA) - namespace.Anchor format"
    )
    config.addinivalue_line(
        "markers",
        "tier: Test tier for CI job separation (0=instant, 1=fast, 2=standard, 3=slow, 4=manual)",
    )


def build_tarball(files: Mapping[str, bytes]) -> bytes:
    """Build an npm-style .tgz with every file under package/."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        for name, data in sorted(files.items()):
            info = tarfile.TarInfo(f"package/{name}")
            info.size = len(data)
            info.mtime = TARBALL_MTIME
            tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()


def build_zip(directory: Path, files: Mapping[str, bytes]) -> Path:
    """Write a deterministic zip as the only file of a fresh directory."""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / "archive.zip"
    with zipfile.ZipFile(path, "w") as zf:
        for name, data in sorted(files.items()):
            zf.writestr(zipfile.ZipInfo(f"package/{name}", date_time=(2020, 1, 1, 0, 0, 0)), data)
    return path


class FakeCommandRunner:
    """CommandRunner that emulates bsdtar, nix-store and nix-build.

    bsdtar repacks the tarball into a zip with Python's tarfile/zipfile and
    stamps the input file's mtime into the zip comment, so a non-fixed
    mtime would show up in the output bytes. nix-store copies the file into
    `store_dir` under the path the real store would choose.

    Attributes:
        calls: Every (argv, cwd, env) the runner saw.
        fail: Tool names that should exit nonzero.
        import_path_override: Path nix-store reports instead of the real one.
        input_mtimes: mtimes of the tarballs handed to bsdtar.
    """

    def __init__(self, store_dir: Path) -> None:
        self.store_dir = store_dir
        self.calls: list[tuple[list[str], Path | None, dict[str, str] | None]] = []
        self.fail: set[str] = set()
        self.import_path_override: Path | None = None
        self.input_mtimes: list[float] = []

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        argv = [str(arg) for arg in args]
        self.calls.append((argv, cwd, dict(env) if env is not None else None))
        tool = Path(argv[0]).name

        if tool in self.fail:
            raise SubprocessError(
                f"{tool} exited with status 1: boom",
                command=argv,
                returncode=1,
                stderr="boom",
            )
        if tool == "bsdtar":
            return self._bsdtar(argv)
        if tool == "nix-store":
            return self._add_fixed(argv, cwd)
        if tool == "nix-build":
            return CommandResult(argv, 0, stdout="/nix/store/aaaa-libarchive-3.7.4\n")
        raise SubprocessError(f"Could not run {tool}", command=argv)

    def tool_calls(self, tool: str) -> list[list[str]]:
        """Argument vectors of all calls to a tool."""
        return [argv for argv, _, _ in self.calls if Path(argv[0]).name == tool]

    def _bsdtar(self, argv: list[str]) -> CommandResult:
        output = Path(argv[argv.index("-cf") + 1])
        source = Path(argv[-1].removeprefix("@"))
        mtime = source.stat().st_mtime
        self.input_mtimes.append(mtime)

        with tarfile.open(source, "r:*") as tar, zipfile.ZipFile(output, "w") as zf:
            for member in tar.getmembers():
                if not member.isfile():
                    continue
                extracted = tar.extractfile(member)
                assert extracted is not None
                info = zipfile.ZipInfo(member.name, date_time=time.gmtime(member.mtime)[:6])
                zf.writestr(info, extracted.read())
            zf.comment = str(int(mtime)).encode()
        return CommandResult(argv, 0)

    def _add_fixed(self, argv: list[str], cwd: Path | None) -> CommandResult:
        assert argv[1] == "--add-fixed"
        algorithm = argv[2]
        assert cwd is not None
        source = cwd / argv[3]

        if self.import_path_override is not None:
            return CommandResult(argv, 0, stdout=f"{self.import_path_override}\n")

        store_path = compute_fixed_output_store_path(
            source.name, checksum_file(source, algorithm), algorithm, self.store_dir
        )
        self.store_dir.mkdir(parents=True, exist_ok=True)
        if not store_path.exists():
            shutil.copyfile(source, store_path)
        return CommandResult(argv, 0, stdout=f"{store_path}\n")


class FakeStorage:
    """StoragePort serving tarballs from a dict, recording every read.

    Attributes:
        files: Source URL mapped to content.
        reads: Sources requested, in order.
    """

    def __init__(self, files: dict[str, bytes] | None = None) -> None:
        self.files = files if files is not None else {}
        self.reads: list[str] = []

    def read(self, source: str, progress: ProgressCallback | None = None) -> bytes:
        self.reads.append(source)
        try:
            data = self.files[source]
        except KeyError:
            raise StorageNotFoundError(f"Not found: {source}", source=source) from None
        if progress:
            progress(len(data), len(data))
        return data


@pytest.fixture
def store_dir(tmp_path: Path) -> Path:
    """An empty directory standing in for /nix/store."""
    path = tmp_path / "nix" / "store"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def fake_runner(store_dir: Path) -> FakeCommandRunner:
    """Fake bsdtar/nix-store/nix-build bound to the test store."""
    return FakeCommandRunner(store_dir)


@pytest.fixture
def fake_storage() -> FakeStorage:
    """Empty in-memory tarball source."""
    return FakeStorage()


@pytest.fixture
def make_zip(tmp_path: Path) -> Callable[..., Path]:
    """Factory for loader output: a zip alone in its own directory."""
    counter = 0

    def factory(files: Mapping[str, bytes] | None = None) -> Path:
        nonlocal counter
        counter += 1
        return build_zip(
            tmp_path / f"loader-{counter}",
            files if files is not None else {"index.js": b"module.exports = 1;\n"},
        )

    return factory


@pytest.fixture
def make_tarball() -> Callable[[Mapping[str, bytes]], bytes]:
    """Factory for npm-style .tgz bytes."""
    return build_tarball
