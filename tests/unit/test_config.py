"""Unit tests for ToolConfig and nix tool resolution."""

from pathlib import Path

import pytest


@pytest.mark.core
@pytest.mark.tier(0)
class TestToolConfig:
    """Tests for ToolConfig construction."""

    def test_defaults(self) -> None:
        """Defaults point at PATH tools, /nix/store and the yarn registry."""
        from nixcachalog.config import DEFAULT_REGISTRY_URL, ToolConfig

        config = ToolConfig()

        assert config.bsdtar_exe == "bsdtar"
        assert config.nix_store_exe == "nix-store"
        assert config.nix_build_exe == "nix-build"
        assert config.store_dir == Path("/nix/store")
        assert config.registry_url == DEFAULT_REGISTRY_URL
        assert config.http_timeout == 60.0

    def test_normalizes_fields(self) -> None:
        """store_dir becomes a Path; the registry loses its trailing slash."""
        from nixcachalog.config import ToolConfig

        config = ToolConfig(store_dir="/tmp/store", registry_url="https://r.test/")  # type: ignore[arg-type]

        assert config.store_dir == Path("/tmp/store")
        assert config.registry_url == "https://r.test"

    @pytest.mark.parametrize("timeout", [0, -1.5])
    def test_rejects_non_positive_timeout(self, timeout: float) -> None:
        """Timeouts must be positive."""
        from nixcachalog.config import ToolConfig
        from nixcachalog.core.exceptions import ConfigurationError

        with pytest.raises(ConfigurationError, match="http_timeout"):
            ToolConfig(http_timeout=timeout)

    def test_from_env_reads_all_variables(self) -> None:
        """Every documented variable is honored."""
        from nixcachalog.config import ToolConfig

        config = ToolConfig.from_env(
            {
                "NIX_STORE_DIR": "/custom/store",
                "NIXCACHALOG_BSDTAR": "/opt/bin/bsdtar",
                "NIXCACHALOG_NIX_STORE": "/opt/bin/nix-store",
                "NIXCACHALOG_NIX_BUILD": "/opt/bin/nix-build",
                "NIXCACHALOG_REGISTRY": "https://mirror.test/",
                "NIXCACHALOG_HTTP_TIMEOUT": "5",
            }
        )

        assert config == ToolConfig(
            bsdtar_exe="/opt/bin/bsdtar",
            nix_store_exe="/opt/bin/nix-store",
            nix_build_exe="/opt/bin/nix-build",
            store_dir=Path("/custom/store"),
            registry_url="https://mirror.test",
            http_timeout=5.0,
        )

    def test_from_env_empty_keeps_defaults(self) -> None:
        """Unset or empty variables leave defaults in place."""
        from nixcachalog.config import ToolConfig

        assert ToolConfig.from_env({"NIX_STORE_DIR": ""}) == ToolConfig()

    def test_from_env_bad_timeout(self) -> None:
        """A non-numeric timeout is a ConfigurationError."""
        from nixcachalog.config import ToolConfig
        from nixcachalog.core.exceptions import ConfigurationError

        with pytest.raises(ConfigurationError, match="NIXCACHALOG_HTTP_TIMEOUT"):
            ToolConfig.from_env({"NIXCACHALOG_HTTP_TIMEOUT": "soon"})

    def test_from_env_defaults_to_process_environment(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Without a mapping, os.environ is read."""
        from nixcachalog.config import ToolConfig

        monkeypatch.setenv("NIX_STORE_DIR", "/from/env")

        assert ToolConfig.from_env().store_dir == Path("/from/env")

    def test_with_overrides_ignores_none(self) -> None:
        """None overrides are skipped, others replace fields."""
        from nixcachalog.config import ToolConfig

        config = ToolConfig().with_overrides(store_dir=None, registry_url="https://x.test/")

        assert config.store_dir == Path("/nix/store")
        assert config.registry_url == "https://x.test"


@pytest.mark.store
@pytest.mark.tier(0)
class TestResolveNixTools:
    """Tests for get_nix_package_path() and resolve_nix_tools()."""

    def test_pins_bsdtar_to_libarchive(self, fake_runner) -> None:
        """bsdtar comes from the libarchive build in nixpkgs."""
        from nixcachalog.config import ToolConfig, resolve_nix_tools

        config = resolve_nix_tools(ToolConfig(nix_build_exe="nix-build"), fake_runner)

        assert config.bsdtar_exe == "/nix/store/aaaa-libarchive-3.7.4/bin/bsdtar"
        ((argv, cwd, _),) = fake_runner.calls
        assert argv == ["nix-build", "<nixpkgs>", "-A", "libarchive", "--no-out-link"]
        assert cwd == Path("/")

    def test_uses_last_line_of_output(self) -> None:
        """Build logs before the path are ignored."""
        from nixcachalog.config import ToolConfig, get_nix_package_path
        from nixcachalog.core.models import CommandResult

        class Runner:
            def run(self, args, *, cwd=None, env=None):
                return CommandResult(list(args), 0, stdout="building...\n/nix/store/bbbb-x\n")

        assert get_nix_package_path("x", ToolConfig(), Runner()) == Path("/nix/store/bbbb-x")

    def test_empty_output_raises(self) -> None:
        """No output path is a ConfigurationError."""
        from nixcachalog.config import ToolConfig, get_nix_package_path
        from nixcachalog.core.exceptions import ConfigurationError
        from nixcachalog.core.models import CommandResult

        class Runner:
            def run(self, args, *, cwd=None, env=None):
                return CommandResult(list(args), 0, stdout="\n")

        with pytest.raises(ConfigurationError, match="libarchive"):
            get_nix_package_path("libarchive", ToolConfig(), Runner())

    def test_nix_build_failure_propagates(self, fake_runner) -> None:
        """A failing nix-build surfaces as SubprocessError."""
        from nixcachalog.config import ToolConfig, resolve_nix_tools
        from nixcachalog.core.exceptions import SubprocessError

        fake_runner.fail.add("nix-build")

        with pytest.raises(SubprocessError):
            resolve_nix_tools(ToolConfig(), fake_runner)
