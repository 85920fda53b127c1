"""Scenario session controller: the record/replay test-session lifecycle."""

from __future__ import annotations

import dataclasses as dc
import logging
import sys
import typing as t

from .clients import ServiceClientSet, build_client_set
from .config import ScenarioConfig
from .environment import EnvironmentFactory
from .helper import EnvironmentSetupHelper
from .record.context import MockContext
from .scripts import ProviderType, resolve_script_manifest

if t.TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    import httpx

    from .runner import ScriptRunner

logger = logging.getLogger(__name__)

ScriptBuilder: t.TypeAlias = "Callable[[], Iterable[str] | None]"
InitializeHook: t.TypeAlias = "Callable[[EnvironmentFactory], None]"
CleanupHook: t.TypeAlias = "Callable[[], None]"


@dc.dataclass(frozen=True, slots=True)
class TestIdentity:
    """Names a session: the test's class and its (method) name."""

    __test__: t.ClassVar[bool] = False  # not a pytest test class

    calling_class: str
    test_name: str


def calling_test(depth: int = 1) -> TestIdentity:
    """Return the identity of the function *depth* frames up the stack.

    ``depth=1`` names the function that called :func:`calling_test`.

    Methods report their class as ``module.QualName``; plain functions report
    their module.
    """
    frame = sys._getframe(depth)  # noqa: SLF001 - caller introspection
    instance = frame.f_locals.get("self")
    if instance is not None:
        cls = type(instance)
        calling_class = f"{cls.__module__}.{cls.__qualname__}"
    else:
        calling_class = str(frame.f_globals.get("__name__", "__main__"))
    return TestIdentity(calling_class, frame.f_code.co_name)


class ScenarioController:
    """Run scenario scripts inside a record/replay session.

    Parameters
    ----------
    config : ScenarioConfig | None
        Directories, recorder mode and matcher policy.  Read from the
        environment when omitted.
    helper : EnvironmentSetupHelper | None
        Wiring between clients and the script runtime.
    runner : ScriptRunner | None
        Script runner for the default helper; ignored when *helper* is given.
    environment_factory : Callable[[], EnvironmentFactory] | None
        Produces a fresh factory for each session.
    live_transport : httpx.BaseTransport | None
        Transport used to reach real services in record mode.
    """

    def __init__(
        self,
        config: ScenarioConfig | None = None,
        *,
        helper: EnvironmentSetupHelper | None = None,
        runner: ScriptRunner | None = None,
        environment_factory: Callable[[], EnvironmentFactory] | None = None,
        live_transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.config = config if config is not None else ScenarioConfig.from_env()
        self.helper = (
            helper
            if helper is not None
            else EnvironmentSetupHelper(self.config.modules_dir, runner=runner)
        )
        self._environment_factory = (
            environment_factory
            if environment_factory is not None
            else EnvironmentFactory
        )
        self._live_transport = live_transport
        self.test_identity: TestIdentity | None = None
        # Most recent session; its clients are closed once the session ends.
        self.context: MockContext | None = None
        self.clients: ServiceClientSet | None = None

    def run_test(self, provider_type: ProviderType | str, *scripts: str) -> None:
        """Run *scripts* for the calling test with no custom hooks.

        The session is named after :attr:`test_identity` when set (the
        pytest plugin sets it), otherwise after the calling method and class.
        """
        identity = self.test_identity or calling_test(depth=2)
        self.run_test_workflow(
            provider_type,
            lambda: scripts,
            None,
            None,
            identity.calling_class,
            identity.test_name,
        )

    def run_test_workflow(
        self,
        provider_type: ProviderType | str,
        script_builder: ScriptBuilder | None,
        initialize: InitializeHook | None,
        cleanup: CleanupHook | None,
        calling_class: str,
        session_name: str,
    ) -> None:
        """Run one scenario session.

        The session context is released on every exit path.  *cleanup* runs
        whenever client setup succeeded, even if the scripts fail, and a
        failure in scripts or hooks propagates after cleanup and release.
        """
        logger.debug(
            "Starting scenario session %s.%s (%s)",
            calling_class,
            session_name,
            provider_type,
        )
        with MockContext.start(
            calling_class,
            session_name,
            records_dir=self.config.records_dir,
            matcher=self.config.matcher,
            mode=self.config.mode,
            live_transport=self._live_transport,
        ) as context:
            self.context = context
            self.clients = None

            factory = self._environment_factory()
            if initialize is not None:
                initialize(factory)

            self._setup_management_clients(context, factory)

            try:
                manifest = resolve_script_manifest(
                    self.config.scripts_dir,
                    provider_type,
                    calling_class,
                    self.helper.platform_module_paths(),
                )
                self.helper.setup_modules(manifest)

                scripts = list(script_builder() or ()) if script_builder else []
                if scripts:
                    self.helper.run_script_test(scripts)
                else:
                    logger.debug("No scenario scripts for %s", session_name)
            finally:
                if cleanup is not None:
                    cleanup()

    def _setup_management_clients(
        self, context: MockContext, factory: EnvironmentFactory
    ) -> None:
        environment = factory.get_test_environment(context)
        self.clients = build_client_set(context, environment)
        self.helper.reset()
        self.helper.setup_management_clients(self.clients)
        self.helper.setup_environment(environment, context)


__all__ = [
    "CleanupHook",
    "InitializeHook",
    "ScenarioController",
    "ScriptBuilder",
    "TestIdentity",
    "calling_test",
]
