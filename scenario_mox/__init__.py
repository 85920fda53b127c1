"""Scenario-test harness for recovery-services backup management clients.

Each scenario runs inside a record/replay HTTP session: live traffic is
captured to a session record the first time, and replayed from it afterwards.
"""

from __future__ import annotations

from .clients import (
    CLIENT_SPECS,
    ClientRole,
    ClientSpec,
    ServiceClient,
    ServiceClientSet,
    build_client_set,
)
from .config import ScenarioConfig
from .controller import ScenarioController, TestIdentity, calling_test
from .environment import EnvironmentFactory, TestEnvironment
from .errors import (
    FixtureError,
    LifecycleError,
    MissingScriptError,
    ReplayMismatchError,
    ScenarioMoxError,
    ScriptExecutionError,
)
from .helper import EnvironmentSetupHelper
from .record import (
    FixtureFile,
    HttpRecorderMode,
    MatcherPolicy,
    MockContext,
    default_matcher_policy,
)
from .runner import PythonScriptRunner, ScriptRunner, ScriptSession
from .scripts import ProviderType, resolve_script_manifest, short_class_name

__all__ = [
    "CLIENT_SPECS",
    "ClientRole",
    "ClientSpec",
    "EnvironmentFactory",
    "EnvironmentSetupHelper",
    "FixtureError",
    "FixtureFile",
    "HttpRecorderMode",
    "LifecycleError",
    "MatcherPolicy",
    "MissingScriptError",
    "MockContext",
    "ProviderType",
    "PythonScriptRunner",
    "ReplayMismatchError",
    "ScenarioConfig",
    "ScenarioController",
    "ScenarioMoxError",
    "ScriptExecutionError",
    "ScriptRunner",
    "ScriptSession",
    "ServiceClient",
    "ServiceClientSet",
    "TestEnvironment",
    "TestIdentity",
    "build_client_set",
    "calling_test",
    "default_matcher_policy",
    "resolve_script_manifest",
    "short_class_name",
]
