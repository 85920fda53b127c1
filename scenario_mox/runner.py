"""Execution of scenario scripts against a prepared session."""

from __future__ import annotations

import dataclasses as dc
import logging
import typing as t
from pathlib import Path

from .errors import MissingScriptError, ScriptExecutionError

if t.TYPE_CHECKING:
    from collections.abc import Sequence

    from .clients import ServiceClientSet
    from .environment import TestEnvironment
    from .record.context import MockContext

logger = logging.getLogger(__name__)

SESSION_NAME: t.Final[str] = "session"


@dc.dataclass(frozen=True, slots=True)
class ScriptSession:
    """What a scenario script sees as ``session``."""

    clients: ServiceClientSet
    environment: TestEnvironment
    context: MockContext

    def asset_name(self, prefix: str) -> str:
        """Return a resource name that replays identically in playback."""
        return self.context.get_asset_name(self.context.session_name, prefix)


@t.runtime_checkable
class ScriptRunner(t.Protocol):
    """Protocol for running script identifiers after loading a manifest."""

    def run(
        self,
        manifest: Sequence[Path],
        scripts: Sequence[str],
        session: ScriptSession,
    ) -> None:
        """Load *manifest* then execute each of *scripts* in order."""
        ...


class PythonScriptRunner:
    """Run scenario scripts written in Python in one shared namespace.

    Every manifest file is executed in order into one globals dict seeded
    with ``session``.  Functions resolve names at call time, so a test script
    may call helpers from modules loaded after it.  Each script identifier is
    then run: a bare name of a callable is called with no arguments, anything
    else is executed as Python source.
    """

    def __init__(self, *, extra_globals: dict[str, t.Any] | None = None) -> None:
        self._extra_globals = dict(extra_globals or {})

    def build_namespace(self, session: ScriptSession) -> dict[str, t.Any]:
        """Return the initial globals for a run."""
        return {**self._extra_globals, SESSION_NAME: session}

    def load(self, manifest: Sequence[Path], namespace: dict[str, t.Any]) -> None:
        """Execute every manifest file into *namespace*.

        Raises
        ------
        MissingScriptError
            If a manifest entry does not exist.
        """
        for entry in manifest:
            path = Path(entry)
            if not path.is_file():
                raise MissingScriptError(path)
            logger.debug("Loading scenario script %s", path)
            code = compile(path.read_text(encoding="utf-8"), str(path), "exec")
            exec(code, namespace)  # noqa: S102 - scenario scripts are trusted

    def execute(self, script: str, namespace: dict[str, t.Any]) -> None:
        """Run one script identifier in *namespace*."""
        target = namespace.get(script) if script.isidentifier() else None
        try:
            if callable(target):
                target()
            else:
                code = compile(script, f"<scenario {script[:40]!r}>", "exec")
                exec(code, namespace)  # noqa: S102 - scenario scripts are trusted
        except Exception as exc:
            raise ScriptExecutionError(script, exc) from exc

    def run(
        self,
        manifest: Sequence[Path],
        scripts: Sequence[str],
        session: ScriptSession,
    ) -> None:
        """Load *manifest* and execute *scripts*, stopping at the first failure."""
        namespace = self.build_namespace(session)
        self.load(manifest, namespace)
        for script in scripts:
            logger.debug("Running scenario script %r", script)
            self.execute(script, namespace)


__all__ = ["PythonScriptRunner", "ScriptRunner", "ScriptSession"]
