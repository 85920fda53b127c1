"""Configuration for scenario sessions."""

from __future__ import annotations

import dataclasses as dc
import os
import typing as t
from pathlib import Path

from .record.context import HttpRecorderMode
from .record.matcher import MatcherPolicy, default_matcher_policy

if t.TYPE_CHECKING:
    from collections.abc import Mapping

RECORDS_DIR_ENV: t.Final[str] = "SCENARIO_MOX_RECORDS_DIR"
SCRIPTS_DIR_ENV: t.Final[str] = "SCENARIO_MOX_SCRIPTS_DIR"
MODULES_DIR_ENV: t.Final[str] = "SCENARIO_MOX_MODULES_DIR"
MODE_ENV: t.Final[str] = "SCENARIO_MOX_MODE"

DEFAULT_RECORDS_DIRNAME: t.Final[str] = "SessionRecords"
DEFAULT_SCRIPTS_DIRNAME: t.Final[str] = "ScenarioTests"


def parse_mode(value: str | HttpRecorderMode | None) -> HttpRecorderMode | None:
    """Return the recorder mode named by *value*; blank means "auto".

    Raises
    ------
    ValueError
        If *value* names neither ``record`` nor ``playback``.
    """
    if value is None:
        return None
    if isinstance(value, HttpRecorderMode):
        return value
    text = value.strip().lower()
    if not text:
        return None
    try:
        return HttpRecorderMode(text)
    except ValueError:
        choices = ", ".join(m.value for m in HttpRecorderMode)
        msg = f"Invalid recorder mode {value!r}; expected one of: {choices}"
        raise ValueError(msg) from None


@dc.dataclass(frozen=True, slots=True)
class ScenarioConfig:
    """Settings shared by every session a controller runs.

    ``mode`` of ``None`` selects playback when a session record exists and
    record otherwise.  ``modules_dir`` of ``None`` uses the bundled platform
    modules.
    """

    records_dir: Path = dc.field(
        default_factory=lambda: Path.cwd() / DEFAULT_RECORDS_DIRNAME
    )
    scripts_dir: Path = dc.field(
        default_factory=lambda: Path.cwd() / DEFAULT_SCRIPTS_DIRNAME
    )
    modules_dir: Path | None = None
    mode: HttpRecorderMode | None = None
    matcher: MatcherPolicy = dc.field(default_factory=default_matcher_policy)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ScenarioConfig:
        """Build a configuration from ``SCENARIO_MOX_*`` environment variables."""
        env = os.environ if environ is None else environ
        defaults = cls()
        records = env.get(RECORDS_DIR_ENV)
        scripts = env.get(SCRIPTS_DIR_ENV)
        modules = env.get(MODULES_DIR_ENV)
        return cls(
            records_dir=Path(records) if records else defaults.records_dir,
            scripts_dir=Path(scripts) if scripts else defaults.scripts_dir,
            modules_dir=Path(modules) if modules else None,
            mode=parse_mode(env.get(MODE_ENV)),
        )

    def replace(self, **changes: t.Any) -> ScenarioConfig:
        """Return a copy with *changes* applied."""
        return dc.replace(self, **changes)


__all__ = [
    "MODE_ENV",
    "MODULES_DIR_ENV",
    "RECORDS_DIR_ENV",
    "SCRIPTS_DIR_ENV",
    "ScenarioConfig",
    "parse_mode",
]
