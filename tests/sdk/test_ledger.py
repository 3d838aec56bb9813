"""
Unit tests for the installation ledger.

Tests loading, saving, presence queries and tolerance of malformed files.
"""

import json
from unittest.mock import patch

import pytest
from filelock import Timeout

from dotnetdiff.core.exceptions import DeveloperError, LedgerWriteError
from dotnetdiff.sdk.artifacts import ArtifactKind
from dotnetdiff.sdk.ledger import InstallationLedger, SdkEntry, TargetEntry
from dotnetdiff.sdk.runtime_identifier import RuntimeIdentifier

WIN_ARM64 = RuntimeIdentifier.parse("win-arm64")


@pytest.fixture
def ledger_path(tmp_path):
    return tmp_path / "dotnet-diff.json"


class TestEntries:
    """Tests for the entry dataclasses."""

    def test_target_entry_defaults(self):
        entry = TargetEntry()
        assert entry.runtime_assemblies is False
        assert entry.jit is False

    def test_target_entry_ignores_unknown_fields(self):
        entry = TargetEntry.from_dict({"jit": True, "extra": 1})
        assert entry == TargetEntry(runtime_assemblies=False, jit=True)

    def test_non_boolean_flags_are_absent(self):
        entry = TargetEntry.from_dict({"jit": "yes", "runtime_assemblies": 1})
        assert entry == TargetEntry()

    def test_sdk_entry_to_dict(self):
        entry = SdkEntry(crossgen2=True, targets={"linux-x64": TargetEntry(jit=True)})
        assert entry.to_dict() == {
            "crossgen2": True,
            "targets": {"linux-x64": {"runtime_assemblies": False, "jit": True}},
        }


class TestLoad:
    """Tests for InstallationLedger.load."""

    def test_missing_file(self, ledger_path):
        ledger = InstallationLedger.load(ledger_path)
        assert ledger.enumerate_versions() == []
        assert ledger.path == ledger_path

    def test_corrupt_file(self, ledger_path, sdk_version, caplog):
        """Test corrupt JSON yields an empty ledger and a warning."""
        ledger_path.write_text("{not json")

        ledger = InstallationLedger.load(ledger_path)

        assert ledger.enumerate_versions() == []
        assert "Invalid ledger file" in caplog.text

    def test_wrong_top_level_type(self, ledger_path):
        ledger_path.write_text("[]")
        assert InstallationLedger.load(ledger_path).to_dict()["sdks"] == {}

    def test_unsupported_version(self, ledger_path, sdk_version):
        ledger_path.write_text(
            json.dumps({"version": 99, "sdks": {sdk_version.raw: {"crossgen2": True}}})
        )
        ledger = InstallationLedger.load(ledger_path)
        assert not ledger.is_present(sdk_version, ArtifactKind.CROSSGEN2)

    def test_missing_fields_default_to_absent(self, ledger_path, sdk_version, linux_x64):
        ledger_path.write_text(
            json.dumps({"sdks": {sdk_version.raw: {"targets": {"linux-x64": {}}}}})
        )

        ledger = InstallationLedger.load(ledger_path)

        assert not ledger.is_present(sdk_version, ArtifactKind.CROSSGEN2)
        assert not ledger.is_present(sdk_version, ArtifactKind.JIT, linux_x64)
        assert ledger.enumerate_targets(sdk_version) == [linux_x64]

    def test_unknown_fields_ignored(self, ledger_path, sdk_version):
        ledger_path.write_text(
            json.dumps(
                {
                    "version": 1,
                    "jitUtils": True,
                    "sdks": {sdk_version.raw: {"crossgen2": True, "notes": "x"}},
                }
            )
        )

        ledger = InstallationLedger.load(ledger_path)

        assert ledger.is_present(sdk_version, ArtifactKind.CROSSGEN2)


class TestPresence:
    """Tests for is_present and mark_present."""

    def test_empty(self, sdk_version, linux_x64):
        ledger = InstallationLedger()
        assert not ledger.is_present(sdk_version, ArtifactKind.CROSSGEN2)
        assert not ledger.is_present(sdk_version, ArtifactKind.JIT, linux_x64)

    def test_mark_crossgen2(self, sdk_version, linux_x64):
        ledger = InstallationLedger()
        ledger.mark_present(sdk_version, ArtifactKind.CROSSGEN2)

        assert ledger.is_present(sdk_version, ArtifactKind.CROSSGEN2)
        assert not ledger.is_present(sdk_version, ArtifactKind.JIT, linux_x64)
        assert ledger.enumerate_targets(sdk_version) == []

    def test_mark_target_kind_creates_entries(self, sdk_version, linux_x64):
        """Test marking a per-target kind upserts the SDK and target entries."""
        ledger = InstallationLedger()
        ledger.mark_present(sdk_version, ArtifactKind.JIT, linux_x64)

        assert ledger.is_present(sdk_version, ArtifactKind.JIT, linux_x64)
        assert not ledger.is_present(
            sdk_version, ArtifactKind.RUNTIME_ASSEMBLIES, linux_x64
        )
        assert not ledger.is_present(sdk_version, ArtifactKind.CROSSGEN2)
        assert ledger.enumerate_versions() == [sdk_version]

    def test_mark_does_not_reset_siblings(self, sdk_version, linux_x64):
        ledger = InstallationLedger()
        ledger.mark_present(sdk_version, ArtifactKind.CROSSGEN2)
        ledger.mark_present(sdk_version, ArtifactKind.RUNTIME_ASSEMBLIES, linux_x64)
        ledger.mark_present(sdk_version, ArtifactKind.JIT, linux_x64)

        assert ledger.is_present(sdk_version, ArtifactKind.CROSSGEN2)
        assert ledger.is_present(
            sdk_version, ArtifactKind.RUNTIME_ASSEMBLIES, linux_x64
        )
        assert ledger.is_present(sdk_version, ArtifactKind.JIT, linux_x64)

    def test_targets_are_independent(self, sdk_version, linux_x64):
        ledger = InstallationLedger()
        ledger.mark_present(sdk_version, ArtifactKind.JIT, linux_x64)

        assert not ledger.is_present(sdk_version, ArtifactKind.JIT, WIN_ARM64)

    def test_target_kind_without_target(self, sdk_version):
        with pytest.raises(DeveloperError):
            InstallationLedger().is_present(sdk_version, ArtifactKind.JIT)

    def test_crossgen2_with_target(self, sdk_version, linux_x64):
        with pytest.raises(DeveloperError):
            InstallationLedger().mark_present(
                sdk_version, ArtifactKind.CROSSGEN2, linux_x64
            )


class TestEnumerate:
    """Tests for enumerate_versions and enumerate_targets."""

    def test_skips_unparseable_keys(self, ledger_path, sdk_version, caplog):
        ledger_path.write_text(
            json.dumps(
                {
                    "sdks": {
                        "garbage": {"crossgen2": True},
                        sdk_version.raw: {
                            "crossgen2": True,
                            "targets": {"linux-x64": {}, "beos-x64": {}},
                        },
                    }
                }
            )
        )

        ledger = InstallationLedger.load(ledger_path)

        assert ledger.enumerate_versions() == [sdk_version]
        assert [str(t) for t in ledger.enumerate_targets(sdk_version)] == ["linux-x64"]
        assert "garbage" in caplog.text

    def test_unknown_version_has_no_targets(self, sdk_version):
        assert InstallationLedger().enumerate_targets(sdk_version) == []


class TestSave:
    """Tests for InstallationLedger.save."""

    def test_round_trip(self, ledger_path, sdk_version, linux_x64):
        ledger = InstallationLedger.load(ledger_path)
        ledger.mark_present(sdk_version, ArtifactKind.CROSSGEN2)
        ledger.mark_present(sdk_version, ArtifactKind.JIT, linux_x64)
        ledger.save()

        data = json.loads(ledger_path.read_text())
        assert data == {
            "version": 1,
            "sdks": {
                sdk_version.raw: {
                    "crossgen2": True,
                    "targets": {
                        "linux-x64": {"runtime_assemblies": False, "jit": True}
                    },
                }
            },
        }

        reloaded = InstallationLedger.load(ledger_path)
        assert reloaded.is_present(sdk_version, ArtifactKind.JIT, linux_x64)

    def test_save_to_other_path(self, tmp_path, sdk_version):
        ledger = InstallationLedger()
        ledger.mark_present(sdk_version, ArtifactKind.CROSSGEN2)

        destination = tmp_path / "nested" / "ledger.json"
        ledger.save(destination)

        assert destination.exists()

    def test_save_without_path(self):
        with pytest.raises(DeveloperError):
            InstallationLedger().save()

    def test_write_failure(self, ledger_path):
        ledger = InstallationLedger(ledger_path)
        with patch(
            "dotnetdiff.sdk.ledger.atomic_write", side_effect=OSError("disk full")
        ):
            with pytest.raises(LedgerWriteError, match="disk full"):
                ledger.save()

    def test_lock_timeout(self, ledger_path):
        ledger = InstallationLedger(ledger_path)
        with patch("dotnetdiff.sdk.ledger.FileLock") as file_lock:
            file_lock.return_value.__enter__.side_effect = Timeout(str(ledger_path))
            with pytest.raises(LedgerWriteError, match="Could not lock"):
                ledger.save()
