"""
Tests for CLI argument parser.
"""

import json
from unittest.mock import patch

import pytest

from dotnetdiff.cli.parser import CLI
from dotnetdiff.core.directory import get_ledger_path
from dotnetdiff.core.exceptions import (
    DeveloperError,
    LedgerWriteError,
    UnsupportedTargetError,
)
from dotnetdiff.sdk.artifacts import ArtifactKind
from dotnetdiff.sdk.version import FrameworkVersion

VERSION = "6.0.0-preview.4.21205.3+7b9ab0e196c78968bac455bf29a9845a85e4a022"


class TestCLIBasics:
    """Test basic CLI functionality."""

    def test_no_command_shows_help(self, capsys):
        """Test that running without command shows help."""
        result = CLI().run([])

        assert result == 1
        captured = capsys.readouterr()
        assert "usage:" in captured.out.lower()

    def test_version_flag(self, capsys):
        """Test --version flag."""
        with pytest.raises(SystemExit) as exc_info:
            CLI().run(["--version"])

        assert exc_info.value.code == 0
        assert "dotnet-diff" in capsys.readouterr().out


class TestInstallCommand:
    """Test install command parsing."""

    def test_defaults(self):
        args = CLI().parse_args(["install", "sdk"])

        assert args.command == "install"
        assert args.artifact == "sdk"
        assert args.framework == "latest"
        assert args.runtimes == []

    def test_framework_and_runtimes(self):
        args = CLI().parse_args(
            ["install", "jit", "-f", VERSION, "-r", "linux-x64", "--runtime", "win-arm64"]
        )

        assert args.artifact == "jit"
        assert args.framework == VERSION
        assert args.runtimes == ["linux-x64", "win-arm64"]

    @pytest.mark.parametrize("artifact", ["sdk", "crossgen2", "runtime-assemblies", "jit"])
    def test_artifacts(self, artifact):
        assert CLI().parse_args(["install", artifact]).artifact == artifact

    def test_unknown_artifact(self):
        with pytest.raises(SystemExit) as exc_info:
            CLI().parse_args(["install", "jitutils"])
        assert exc_info.value.code == 2

    def test_global_options(self, tmp_path):
        args = CLI().parse_args(["-v", "--config", str(tmp_path / "c.yaml"), "list"])

        assert args.verbose is True
        assert args.config == tmp_path / "c.yaml"
        assert args.command == "list"


class TestDispatch:
    """Test command dispatch, error handling and ledger persistence."""

    def test_list_empty(self, app_dir, clean_env, capsys):
        result = CLI().run(["list"])

        assert result == 0
        out = capsys.readouterr().out
        assert f"Install location: '{app_dir}'" in out
        assert "No SDKs installed" in out
        assert get_ledger_path(app_dir).exists()
        assert (app_dir / "SDKs").is_dir()

    def test_ledger_saved_when_command_fails(self, app_dir, clean_env, capsys):
        """Test artifacts installed before a failure stay recorded."""
        version = FrameworkVersion.parse(VERSION)

        def failing_install(args, context):
            context.ledger.mark_present(version, ArtifactKind.CROSSGEN2)
            raise UnsupportedTargetError("There are no builds of the Jit for osx-arm")

        with patch("dotnetdiff.cli.commands.install.run", side_effect=failing_install):
            result = CLI().run(["install", "sdk", "-f", VERSION])

        assert result == 1
        assert "ERROR: There are no builds of the Jit for osx-arm" in capsys.readouterr().err

        saved = json.loads(get_ledger_path(app_dir).read_text())
        assert saved["sdks"][VERSION]["crossgen2"] is True

    def test_save_failure_keeps_command_error(self, app_dir, clean_env, capsys):
        """Test a ledger save failure does not replace the command's error."""
        with patch(
            "dotnetdiff.cli.commands.install.run",
            side_effect=UnsupportedTargetError("There are no builds of the Jit for win-arm"),
        ), patch(
            "dotnetdiff.sdk.ledger.InstallationLedger.save",
            side_effect=LedgerWriteError("Could not lock the ledger"),
        ):
            result = CLI().run(["install", "jit", "-f", VERSION, "-r", "win-arm"])

        assert result == 1
        err = capsys.readouterr().err
        assert "ERROR: There are no builds of the Jit for win-arm" in err
        assert "ERROR: Could not lock" not in err

    def test_save_failure_after_success(self, app_dir, clean_env, capsys):
        with patch(
            "dotnetdiff.sdk.ledger.InstallationLedger.save",
            side_effect=LedgerWriteError("Could not lock the ledger"),
        ):
            result = CLI().run(["list"])

        assert result == 1
        assert "ERROR: Could not lock the ledger" in capsys.readouterr().err

    def test_developer_error(self, app_dir, clean_env):
        with patch(
            "dotnetdiff.cli.commands.list.run", side_effect=DeveloperError("broken")
        ):
            assert CLI().run(["list"]) == 2

    def test_keyboard_interrupt(self, app_dir, clean_env):
        with patch("dotnetdiff.cli.commands.list.run", side_effect=KeyboardInterrupt):
            assert CLI().run(["list"]) == 130

    def test_invalid_version(self, app_dir, clean_env, capsys):
        result = CLI().run(["install", "crossgen2", "-f", "6.0.0"])

        assert result == 1
        assert "Invalid dotnet version: '6.0.0'" in capsys.readouterr().err

    def test_invalid_config(self, app_dir, clean_env, capsys, tmp_path):
        config = tmp_path / "broken.yaml"
        config.write_text("jit_search: [unclosed")

        assert CLI().run(["--config", str(config), "list"]) == 1
        assert "Invalid YAML" in capsys.readouterr().err

    def test_settings_passed_to_command(self, app_dir, clean_env, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text("jit_search:\n  depth: 3\n")
        seen = {}

        def record(args, context):
            seen["settings"] = context.settings
            seen["app_dir"] = context.app_dir
            return 0

        with patch("dotnetdiff.cli.commands.list.run", side_effect=record):
            assert CLI().run(["--config", str(config), "list"]) == 0

        assert seen["settings"].jit_search_depth == 3
        assert seen["app_dir"] == app_dir
