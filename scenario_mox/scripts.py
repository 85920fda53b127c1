"""Script manifest resolution for scenario tests.

Scenario scripts live under ``<scripts_dir>/<category>/``.  A test class
``tests.backup.AzureVMTests`` in category ``AzureVM`` runs
``AzureVM/AzureVMTests.py``, preceded by ``AzureVM/Common.py`` when that file
exists, and followed by the platform modules the script runtime needs.
"""

from __future__ import annotations

import enum
import re
import typing as t
from pathlib import Path

if t.TYPE_CHECKING:
    from collections.abc import Iterable

SCRIPT_SUFFIX: t.Final[str] = ".py"
COMMON_SCRIPT_STEM: t.Final[str] = "Common"

_CLASS_NAME_SEPARATORS: t.Final[re.Pattern[str]] = re.compile(r"\.|::")

ScriptManifest: t.TypeAlias = tuple[Path, ...]


class ProviderType(enum.StrEnum):
    """Backup provider categories; each names a script folder."""

    AZURE_VM = "AzureVM"
    AZURE_SQL = "AzureSql"
    AZURE_FILES = "AzureFiles"
    AZURE_WORKLOAD = "AzureWorkload"
    MAB = "MAB"
    DPM = "DPM"


def short_class_name(calling_class: str) -> str:
    """Return the last dotted segment of *calling_class*.

    >>> short_class_name("Foo.Bar.BazTests")
    'BazTests'
    >>> short_class_name("tests/test_vm.py::AzureVMTests")
    'AzureVMTests'
    """
    segments = [s for s in _CLASS_NAME_SEPARATORS.split(calling_class) if s]
    if not segments:
        msg = f"Cannot derive a class name from {calling_class!r}"
        raise ValueError(msg)
    return segments[-1]


def category_dir(scripts_dir: Path | str, category: ProviderType | str) -> Path:
    """Return the script folder for *category*."""
    return Path(scripts_dir) / str(category)


def resolve_script_manifest(
    scripts_dir: Path | str,
    category: ProviderType | str,
    calling_class: str,
    module_paths: Iterable[Path | str] = (),
) -> ScriptManifest:
    """Return the ordered script files to load for a test.

    The shared ``Common`` script is included only when it exists.  The
    test-specific script is always included; its presence is checked when the
    runner loads it.
    """
    folder = category_dir(scripts_dir, category)
    manifest: list[Path] = []

    common = folder / f"{COMMON_SCRIPT_STEM}{SCRIPT_SUFFIX}"
    if common.is_file():
        manifest.append(common)

    manifest.append(folder / f"{short_class_name(calling_class)}{SCRIPT_SUFFIX}")
    manifest.extend(Path(p) for p in module_paths)
    return tuple(manifest)


__all__ = [
    "COMMON_SCRIPT_STEM",
    "SCRIPT_SUFFIX",
    "ProviderType",
    "ScriptManifest",
    "category_dir",
    "resolve_script_manifest",
    "short_class_name",
]
