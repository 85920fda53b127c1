"""Global test configuration and shared fixtures."""

from __future__ import annotations

import textwrap
import typing as t

import pytest

from scenario_mox.config import ScenarioConfig
from scenario_mox.environment import TEST_CONNECTION_STRING_ENV
from scenario_mox.record.context import MockContext
from scenario_mox.unittests._fake_service import (
    CONNECTION_STRING,
    FakeManagementService,
)

if t.TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture(autouse=True)
def reset_active_context() -> t.Generator[None, None, None]:
    """Ensure no ``MockContext`` leaks between tests."""
    MockContext.reset_active_context()
    yield
    MockContext.reset_active_context()


@pytest.fixture
def fake_service(monkeypatch: pytest.MonkeyPatch) -> FakeManagementService:
    """Return a fake live endpoint and export record-mode credentials."""
    monkeypatch.setenv(TEST_CONNECTION_STRING_ENV, CONNECTION_STRING)
    return FakeManagementService()


@pytest.fixture
def scripts_dir(tmp_path: Path) -> Path:
    """Create a scenario script tree with an ``AzureVM`` category."""
    root = tmp_path / "ScenarioTests"
    category = root / "AzureVM"
    category.mkdir(parents=True)
    (category / "Common.py").write_text(
        textwrap.dedent(
            """
            RESOURCE_GROUP = "rg1"
            VAULT_NAME = "vault1"
            """
        )
    )
    (category / "AzureVMTests.py").write_text(
        textwrap.dedent(
            """
            def test_get_vault():
                vault = get_vault(session, RESOURCE_GROUP, VAULT_NAME)
                assert vault["name"] == VAULT_NAME

            def test_get_items():
                items = list_protected_items(session, RESOURCE_GROUP, VAULT_NAME)
                assert [i["name"] for i in items] == ["vm1"]

            def test_fails():
                raise AssertionError("scenario failed")
            """
        )
    )
    return root


@pytest.fixture
def scenario_config(tmp_path: Path, scripts_dir: Path) -> ScenarioConfig:
    """Return a configuration rooted in the test's temporary directory."""
    return ScenarioConfig(
        records_dir=tmp_path / "SessionRecords",
        scripts_dir=scripts_dir,
    )
