"""Unit tests for scenario configuration."""

from __future__ import annotations

from pathlib import Path

import pytest

from scenario_mox.config import (
    MODE_ENV,
    MODULES_DIR_ENV,
    RECORDS_DIR_ENV,
    SCRIPTS_DIR_ENV,
    ScenarioConfig,
    parse_mode,
)
from scenario_mox.record.context import HttpRecorderMode
from scenario_mox.record.matcher import default_matcher_policy


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, None),
        ("", None),
        ("  ", None),
        ("record", HttpRecorderMode.RECORD),
        ("Playback", HttpRecorderMode.PLAYBACK),
        (HttpRecorderMode.PLAYBACK, HttpRecorderMode.PLAYBACK),
    ],
)
def test_parse_mode(
    value: str | HttpRecorderMode | None, expected: HttpRecorderMode | None
) -> None:
    """Blank means automatic; names are case-insensitive."""
    assert parse_mode(value) is expected


def test_parse_mode_rejects_unknown() -> None:
    """Unknown modes list the valid choices."""
    with pytest.raises(ValueError, match="record, playback"):
        parse_mode("replay")


def test_defaults_are_relative_to_cwd(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Default directories sit under the working directory."""
    monkeypatch.chdir(tmp_path)
    config = ScenarioConfig()
    assert config.records_dir == tmp_path / "SessionRecords"
    assert config.scripts_dir == tmp_path / "ScenarioTests"
    assert config.modules_dir is None
    assert config.mode is None
    assert config.matcher == default_matcher_policy()


def test_from_env_reads_variables(tmp_path: Path) -> None:
    """Each setting has an environment variable."""
    config = ScenarioConfig.from_env(
        {
            RECORDS_DIR_ENV: str(tmp_path / "r"),
            SCRIPTS_DIR_ENV: str(tmp_path / "s"),
            MODULES_DIR_ENV: str(tmp_path / "m"),
            MODE_ENV: "playback",
        }
    )
    assert config.records_dir == tmp_path / "r"
    assert config.scripts_dir == tmp_path / "s"
    assert config.modules_dir == tmp_path / "m"
    assert config.mode is HttpRecorderMode.PLAYBACK


def test_from_env_defaults(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Unset variables keep the defaults."""
    monkeypatch.chdir(tmp_path)
    config = ScenarioConfig.from_env({})
    assert config.records_dir == tmp_path / "SessionRecords"
    assert config.mode is None


def test_replace_returns_a_copy() -> None:
    """replace() leaves the original untouched."""
    config = ScenarioConfig(records_dir=Path("a"))
    changed = config.replace(mode=HttpRecorderMode.RECORD)
    assert changed.mode is HttpRecorderMode.RECORD
    assert config.mode is None
    assert changed.records_dir == Path("a")
