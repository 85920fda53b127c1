"""Wiring between a session's clients and the scenario script runtime."""

from __future__ import annotations

import logging
import typing as t
from pathlib import Path

from .errors import LifecycleError
from .runner import PythonScriptRunner, ScriptRunner, ScriptSession

if t.TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from .clients import ServiceClientSet
    from .environment import TestEnvironment
    from .record.context import MockContext

logger = logging.getLogger(__name__)

BUNDLED_MODULES_DIR: t.Final[Path] = Path(__file__).resolve().parent / "modules"

PROFILE_MODULE: t.Final[str] = "profile.py"
RECOVERY_SERVICES_MODULE: t.Final[str] = "recovery_services.py"
BACKUP_MODULE: t.Final[str] = "backup.py"


class EnvironmentSetupHelper:
    """Collect clients, environment and modules, then hand them to a runner.

    Parameters
    ----------
    modules_dir : Path | str | None
        Directory holding the platform modules.  Defaults to the modules
        bundled with this package.
    runner : ScriptRunner | None
        Script runner; a :class:`PythonScriptRunner` when omitted.
    """

    def __init__(
        self,
        modules_dir: Path | str | None = None,
        *,
        runner: ScriptRunner | None = None,
    ) -> None:
        self.modules_dir = Path(modules_dir) if modules_dir else BUNDLED_MODULES_DIR
        self.runner: ScriptRunner = runner if runner is not None else PythonScriptRunner()
        self._clients: ServiceClientSet | None = None
        self._environment: TestEnvironment | None = None
        self._context: MockContext | None = None
        self._modules: tuple[Path, ...] = ()

    @property
    def modules(self) -> tuple[Path, ...]:
        """The manifest registered by :meth:`setup_modules`."""
        return self._modules

    @property
    def profile_module(self) -> Path:
        """Path of the profile module (subscription and context helpers)."""
        return self.get_module_path(PROFILE_MODULE)

    def get_module_path(self, name: str) -> Path:
        """Return the path of platform module *name*."""
        return self.modules_dir / name

    def platform_module_paths(self) -> tuple[Path, Path, Path]:
        """Return the three platform modules every scenario loads."""
        return (
            self.profile_module,
            self.get_module_path(RECOVERY_SERVICES_MODULE),
            self.get_module_path(BACKUP_MODULE),
        )

    def setup_management_clients(self, clients: ServiceClientSet) -> None:
        """Register the session's clients for the script runtime."""
        self._clients = clients

    def setup_environment(
        self, environment: TestEnvironment, context: MockContext
    ) -> None:
        """Register the session environment and context."""
        self._environment = environment
        self._context = context

    def setup_modules(self, paths: Iterable[Path | str]) -> None:
        """Register the ordered manifest loaded before scripts run."""
        self._modules = tuple(Path(p) for p in paths)
        logger.debug("Registered %d scenario modules", len(self._modules))

    def reset(self) -> None:
        """Forget everything registered for the previous session."""
        self._clients = None
        self._environment = None
        self._context = None
        self._modules = ()

    def session(self) -> ScriptSession:
        """Return the :class:`ScriptSession` scripts will see."""
        if self._clients is None or self._environment is None or self._context is None:
            msg = (
                "Scenario session is not prepared; call setup_management_clients() "
                "and setup_environment() first"
            )
            raise LifecycleError(msg)
        return ScriptSession(
            clients=self._clients,
            environment=self._environment,
            context=self._context,
        )

    def run_script_test(self, scripts: Sequence[str]) -> None:
        """Run *scripts* against the registered modules and session."""
        session = self.session()
        logger.info(
            "Running %d scenario script(s) for %s",
            len(scripts),
            session.context.session_name,
        )
        self.runner.run(self._modules, list(scripts), session)


__all__ = ["BUNDLED_MODULES_DIR", "EnvironmentSetupHelper"]
