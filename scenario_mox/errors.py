"""Exception hierarchy for scenario-mox."""

from __future__ import annotations

import typing as t

if t.TYPE_CHECKING:
    from pathlib import Path


class ScenarioMoxError(Exception):
    """Base class for all scenario-mox errors."""


class LifecycleError(ScenarioMoxError):
    """Raised when a session context is used outside its lifetime."""


class FixtureError(ScenarioMoxError):
    """Raised when a session-record file cannot be read or migrated."""


class ReplayMismatchError(ScenarioMoxError):
    """Raised when playback has no recorded answer for a request or asset."""


class MissingScriptError(ScenarioMoxError):
    """Raised when a manifest entry is missing on disk."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"Scenario script not found: {path}")
        self.path = path


class ScriptExecutionError(ScenarioMoxError):
    """Raised when a scenario script identifier fails.

    The original exception is available as ``__cause__``.
    """

    def __init__(self, script: str, cause: BaseException) -> None:
        msg = f"Scenario script {script!r} failed: {type(cause).__name__}: {cause}"
        super().__init__(msg)
        self.script = script


__all__ = [
    "FixtureError",
    "LifecycleError",
    "MissingScriptError",
    "ReplayMismatchError",
    "ScenarioMoxError",
    "ScriptExecutionError",
]
