"""Unit tests for script manifest resolution."""

from __future__ import annotations

import typing as t

import pytest

from scenario_mox.scripts import (
    ProviderType,
    category_dir,
    resolve_script_manifest,
    short_class_name,
)

if t.TYPE_CHECKING:
    from pathlib import Path


@pytest.mark.parametrize(
    ("calling_class", "expected"),
    [
        ("Foo.Bar.BazTests", "BazTests"),
        ("AzureVMTests", "AzureVMTests"),
        ("tests/test_vm.py::AzureVMTests", "AzureVMTests"),
        ("pkg.Outer.Inner", "Inner"),
    ],
)
def test_short_class_name(calling_class: str, expected: str) -> None:
    """The last segment of a dotted or node-id style name is used."""
    assert short_class_name(calling_class) == expected


@pytest.mark.parametrize("calling_class", ["", ".", "::"])
def test_short_class_name_rejects_empty(calling_class: str) -> None:
    """Names without any segment are rejected."""
    with pytest.raises(ValueError, match="Cannot derive"):
        short_class_name(calling_class)


def test_category_dir(tmp_path: Path) -> None:
    """Provider types name their script folder."""
    assert category_dir(tmp_path, ProviderType.AZURE_VM) == tmp_path / "AzureVM"
    assert category_dir(tmp_path, "MAB") == tmp_path / "MAB"


class TestResolveScriptManifest:
    """Tests for :func:`resolve_script_manifest`."""

    def test_common_precedes_test_script(self, scripts_dir: Path) -> None:
        """Common, then the class script, then the platform modules."""
        modules = (scripts_dir / "m1.py", scripts_dir / "m2.py")
        manifest = resolve_script_manifest(
            scripts_dir, ProviderType.AZURE_VM, "tests.backup.AzureVMTests", modules
        )
        folder = scripts_dir / "AzureVM"
        assert manifest == (
            folder / "Common.py",
            folder / "AzureVMTests.py",
            *modules,
        )

    def test_missing_common_is_skipped(self, tmp_path: Path) -> None:
        """Categories without a Common script start with the class script."""
        manifest = resolve_script_manifest(tmp_path, "AzureSql", "pkg.SqlTests")
        assert manifest == (tmp_path / "AzureSql" / "SqlTests.py",)

    def test_test_script_is_listed_even_when_missing(self, tmp_path: Path) -> None:
        """Resolution does not check the class script; loading does."""
        manifest = resolve_script_manifest(tmp_path, "DPM", "pkg.Missing")
        assert manifest[-1] == tmp_path / "DPM" / "Missing.py"
        assert not manifest[-1].exists()
