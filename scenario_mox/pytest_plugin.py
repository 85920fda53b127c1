"""Pytest plugin providing the ``scenario_controller`` fixture."""

from __future__ import annotations

import logging
import re
import typing as t
from pathlib import Path

import pytest

from .config import ScenarioConfig, parse_mode
from .controller import ScenarioController, TestIdentity
from .record.context import HttpRecorderMode, MockContext

logger = logging.getLogger(__name__)

_UNSAFE_NAME_CHARS: t.Final[re.Pattern[str]] = re.compile(r"[^\w.-]+")


def pytest_addoption(parser: pytest.Parser) -> None:
    """Register command-line and ini options for the plugin."""
    group = parser.getgroup("scenario_mox")
    group.addoption(
        "--scenario-mox-mode",
        action="store",
        dest="scenario_mox_mode",
        choices=[m.value for m in HttpRecorderMode],
        default=None,
        help=(
            "Force record or playback for every scenario session. By default "
            "a session replays when its session record exists."
        ),
    )
    parser.addini(
        "scenario_mox_mode",
        "Recorder mode for scenario sessions (record or playback).",
        default="",
    )
    parser.addini(
        "scenario_mox_records_dir",
        "Directory holding session records, relative to the rootdir.",
        default="",
    )
    parser.addini(
        "scenario_mox_scripts_dir",
        "Directory holding scenario scripts, relative to the rootdir.",
        default="",
    )
    parser.addini(
        "scenario_mox_modules_dir",
        "Directory holding platform modules, relative to the rootdir.",
        default="",
    )


def pytest_configure(config: pytest.Config) -> None:
    """Register plugin-specific markers."""
    config.addinivalue_line(
        "markers",
        (
            "scenario_mox(mode: str): force 'record' or 'playback' for the "
            "scenario session of a single test."
        ),
    )


def _ini_path(config: pytest.Config, name: str) -> Path | None:
    value = str(config.getini(name) or "").strip()
    if not value:
        return None
    path = Path(value)
    return path if path.is_absolute() else config.rootpath / path


def _resolve_mode(request: pytest.FixtureRequest) -> HttpRecorderMode | None:
    """Return the recorder mode override for this test, if any."""
    # Priority order: marker > CLI option > INI setting > environment

    marker = request.node.get_closest_marker("scenario_mox")
    if marker is not None and "mode" in marker.kwargs:
        return parse_mode(marker.kwargs["mode"])

    config = request.config
    cli_value = config.getoption("scenario_mox_mode")
    if cli_value is not None:
        return parse_mode(cli_value)

    return parse_mode(str(config.getini("scenario_mox_mode") or ""))


def _config_for_request(request: pytest.FixtureRequest) -> ScenarioConfig:
    """Build the session configuration for the requesting test."""
    config = request.config
    base = ScenarioConfig.from_env()
    changes: dict[str, t.Any] = {}
    for field, ini_name in (
        ("records_dir", "scenario_mox_records_dir"),
        ("scripts_dir", "scenario_mox_scripts_dir"),
        ("modules_dir", "scenario_mox_modules_dir"),
    ):
        path = _ini_path(config, ini_name)
        if path is not None:
            changes[field] = path
    mode = _resolve_mode(request)
    if mode is not None:
        changes["mode"] = mode
    return base.replace(**changes) if changes else base


def node_identity(node: pytest.Item) -> TestIdentity:
    """Return the session identity for a collected test item."""
    cls = getattr(node, "cls", None)
    if cls is not None:
        calling_class = f"{cls.__module__}.{cls.__qualname__}"
    else:
        module = getattr(node, "module", None)
        calling_class = module.__name__ if module is not None else node.nodeid
    name = _UNSAFE_NAME_CHARS.sub("_", node.name).strip("_") or node.name
    return TestIdentity(calling_class, name)


@pytest.fixture
def scenario_controller(
    request: pytest.FixtureRequest,
) -> t.Generator[ScenarioController, None, None]:
    """Provide a :class:`ScenarioController` named after the requesting test."""
    controller = ScenarioController(_config_for_request(request))
    controller.test_identity = node_identity(request.node)
    try:
        yield controller
    except Exception:
        logger.exception("Error during scenario_mox fixture setup or test execution")
        raise
    finally:
        _teardown_stale_context()


def _teardown_stale_context() -> None:
    """Dispose a session context the test left open."""
    stale = MockContext.get_active_context()
    if stale is None:
        return
    logger.warning(
        "Scenario session %s.%s was left open; disposing it",
        stale.calling_class,
        stale.session_name,
    )
    try:
        stale.dispose()
    except Exception:
        logger.exception("Error during scenario_mox fixture cleanup")
        pytest.fail("scenario_mox fixture cleanup failed")
