"""Unit tests for BsdtarNormalizer."""

from __future__ import annotations

import shutil
import zipfile
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import TYPE_CHECKING

import pytest


if TYPE_CHECKING:
    from conftest import FakeCommandRunner


TarballFactory = Callable[[Mapping[str, bytes]], bytes]


def _normalizer(runner, bsdtar_exe: str = "bsdtar"):
    from nixcachalog.adapters.archive import BsdtarNormalizer
    from nixcachalog.config import ToolConfig

    return BsdtarNormalizer(ToolConfig(bsdtar_exe=bsdtar_exe), runner)


@pytest.mark.archive
@pytest.mark.tra("Domain.ArchiveNormalizer")
@pytest.mark.tier(1)
class TestBsdtarNormalizer:
    """Tests for normalize() against the fake bsdtar."""

    def test_output_is_sole_file_in_its_dir(
        self, fake_runner: FakeCommandRunner, make_tarball: TarballFactory
    ) -> None:
        """The zip is alone in a fresh directory; the tarball is gone."""
        zip_path = _normalizer(fake_runner).normalize(make_tarball({"index.js": b"1"}))

        try:
            assert zip_path.name == "archive.zip"
            assert list(zip_path.parent.iterdir()) == [zip_path]
            with zipfile.ZipFile(zip_path) as zf:
                assert zf.namelist() == ["package/index.js"]
        finally:
            shutil.rmtree(zip_path.parent)

    def test_input_mtime_is_fixed(
        self, fake_runner: FakeCommandRunner, make_tarball: TarballFactory
    ) -> None:
        """bsdtar sees the tarball with mtime SAFE_TIME."""
        from nixcachalog.adapters.archive import SAFE_TIME

        zip_path = _normalizer(fake_runner).normalize(make_tarball({"a": b"a"}))
        shutil.rmtree(zip_path.parent)

        assert SAFE_TIME == 456789000
        assert fake_runner.input_mtimes == [SAFE_TIME]

    def test_command_line_and_environment(
        self, fake_runner: FakeCommandRunner, make_tarball: TarballFactory
    ) -> None:
        """bsdtar runs from / with TZ=UTC and reads the tarball via @."""
        zip_path = _normalizer(fake_runner).normalize(make_tarball({"a": b"a"}))
        shutil.rmtree(zip_path.parent)

        ((argv, cwd, env),) = fake_runner.calls
        assert argv == [
            "bsdtar",
            "-cf",
            str(zip_path),
            "--format=zip",
            f"@{zip_path.parent / 'archive.tgz'}",
        ]
        assert cwd == Path("/")
        assert env is not None
        assert env["TZ"] == "UTC"

    def test_uses_configured_executable(
        self, fake_runner: FakeCommandRunner, make_tarball: TarballFactory
    ) -> None:
        """The bsdtar path comes from ToolConfig."""
        zip_path = _normalizer(
            fake_runner, "/nix/store/aaaa-libarchive-3.7.4/bin/bsdtar"
        ).normalize(make_tarball({"a": b"a"}))
        shutil.rmtree(zip_path.parent)

        assert fake_runner.calls[0][0][0] == "/nix/store/aaaa-libarchive-3.7.4/bin/bsdtar"

    def test_same_tarball_gives_identical_bytes(
        self, fake_runner: FakeCommandRunner, make_tarball: TarballFactory
    ) -> None:
        """Two conversions of one download are byte-identical."""
        normalizer = _normalizer(fake_runner)
        raw = make_tarball({"index.js": b"x", "package.json": b"{}"})

        first = normalizer.normalize(raw)
        second = normalizer.normalize(raw)

        try:
            assert first.parent != second.parent
            assert first.read_bytes() == second.read_bytes()
        finally:
            shutil.rmtree(first.parent)
            shutil.rmtree(second.parent)

    def test_failure_removes_temp_dir(
        self,
        fake_runner: FakeCommandRunner,
        make_tarball: TarballFactory,
        monkeypatch: pytest.MonkeyPatch,
        tmp_path: Path,
    ) -> None:
        """A failing bsdtar raises SubprocessError and leaves nothing behind."""
        import tempfile

        from nixcachalog.core.exceptions import SubprocessError

        scratch = tmp_path / "scratch"
        scratch.mkdir()
        monkeypatch.setattr(tempfile, "tempdir", str(scratch))
        fake_runner.fail.add("bsdtar")

        with pytest.raises(SubprocessError):
            _normalizer(fake_runner).normalize(make_tarball({"a": b"a"}))

        assert list(scratch.iterdir()) == []

    def test_write_failure_is_archive_error(
        self,
        fake_runner: FakeCommandRunner,
        make_tarball: TarballFactory,
        monkeypatch: pytest.MonkeyPatch,
        tmp_path: Path,
    ) -> None:
        """A full disk surfaces as ArchiveError and bsdtar never runs."""
        import tempfile

        from nixcachalog.core.exceptions import ArchiveError

        scratch = tmp_path / "scratch"
        scratch.mkdir()
        monkeypatch.setattr(tempfile, "tempdir", str(scratch))

        def disk_full(self, data):
            raise OSError(28, "No space left on device")

        monkeypatch.setattr(Path, "write_bytes", disk_full)

        with pytest.raises(ArchiveError, match="No space left") as excinfo:
            _normalizer(fake_runner).normalize(make_tarball({"a": b"a"}))

        assert isinstance(excinfo.value.cause, OSError)
        assert fake_runner.tool_calls("bsdtar") == []
        assert list(scratch.iterdir()) == []

    def test_missing_output_raises(
        self, make_tarball: TarballFactory, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        """A bsdtar that exits 0 without writing the zip is an error."""
        import tempfile

        from nixcachalog.core.exceptions import SubprocessError
        from nixcachalog.core.models import CommandResult

        class SilentRunner:
            def run(self, args, *, cwd=None, env=None):
                return CommandResult(list(args), 0)

        scratch = tmp_path / "scratch"
        scratch.mkdir()
        monkeypatch.setattr(tempfile, "tempdir", str(scratch))

        with pytest.raises(SubprocessError, match="produced no archive") as excinfo:
            _normalizer(SilentRunner()).normalize(make_tarball({"a": b"a"}))

        assert excinfo.value.returncode == 0
        assert list(scratch.iterdir()) == []


@pytest.mark.archive
@pytest.mark.tier(2)
@pytest.mark.skipif(shutil.which("bsdtar") is None, reason="bsdtar not installed")
class TestRealBsdtar:
    """normalize() with the real bsdtar binary."""

    def test_converts_tarball_to_zip(self, make_tarball: TarballFactory) -> None:
        """Files keep their package/ prefix and contents."""
        from nixcachalog.adapters.process import SubprocessRunner

        zip_path = _normalizer(SubprocessRunner()).normalize(
            make_tarball({"index.js": b"module.exports = 1;\n"})
        )

        try:
            with zipfile.ZipFile(zip_path) as zf:
                assert zf.read("package/index.js") == b"module.exports = 1;\n"
        finally:
            shutil.rmtree(zip_path.parent)
