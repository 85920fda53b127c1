"""Unit tests for test environment construction."""

from __future__ import annotations

import logging
import typing as t

import pytest

from scenario_mox.environment import (
    DEFAULT_RESOURCE_MANAGER_URL,
    PLAYBACK_SUBSCRIPTION_ID,
    PLAYBACK_TOKEN,
    TEST_CONNECTION_STRING_ENV,
    EnvironmentFactory,
    parse_connection_string,
)
from scenario_mox.record.context import HttpRecorderMode, MockContext
from scenario_mox.record.fixture import FixtureFile, FixtureMetadata
from scenario_mox.record.matcher import default_matcher_policy
from scenario_mox.unittests._fake_service import CONNECTION_STRING, SUBSCRIPTION_ID

if t.TYPE_CHECKING:
    from pathlib import Path

    import httpx


def _context(
    records_dir: Path, live: httpx.BaseTransport | None = None
) -> MockContext:
    return MockContext.start(
        "pkg.Tests",
        "test_env",
        records_dir=records_dir,
        matcher=default_matcher_policy(),
        live_transport=live,
    )


class TestParseConnectionString:
    """Tests for :func:`parse_connection_string`."""

    def test_known_keys_are_mapped(self) -> None:
        """Keys are matched case-insensitively and mapped to fields."""
        settings = parse_connection_string(
            "subscriptionid=abc;TenantId=t1;ResourceManagementUri=https://rm/"
        )
        assert settings == {
            "subscription_id": "abc",
            "tenant_id": "t1",
            "resource_manager_url": "https://rm/",
        }

    def test_values_may_contain_equals(self) -> None:
        """Only the first ``=`` separates key and value."""
        settings = parse_connection_string("RawToken=abc==;")
        assert settings == {"access_token": "abc=="}

    def test_unknown_keys_are_ignored(self) -> None:
        """Keys the harness does not use are skipped."""
        assert parse_connection_string("Environment=Prod;HttpRecorderMode=x") == {}

    def test_blank_string_is_empty(self) -> None:
        """An empty connection string yields no settings."""
        assert parse_connection_string("") == {}

    def test_malformed_segment_raises(self) -> None:
        """Segments without ``=`` are rejected."""
        with pytest.raises(ValueError, match="Malformed connection string"):
            parse_connection_string("SubscriptionId=abc;garbage")


class TestEnvironmentFactory:
    """Tests for :class:`EnvironmentFactory`."""

    def test_reads_connection_string_from_environment(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """The default source is ``TEST_CSM_ORGID_AUTHENTICATION``."""
        monkeypatch.setenv(TEST_CONNECTION_STRING_ENV, CONNECTION_STRING)
        factory = EnvironmentFactory()
        assert factory.settings["subscription_id"] == SUBSCRIPTION_ID

    def test_overrides_update_settings(self) -> None:
        """Initialize hooks can override subscription, token and endpoint."""
        factory = EnvironmentFactory("", environ={})
        factory.set_subscription("sub-2")
        factory.set_token("tok")
        factory.set_endpoint("https://rm.example/")
        assert factory.settings == {
            "subscription_id": "sub-2",
            "access_token": "tok",
            "resource_manager_url": "https://rm.example/",
        }

    def test_settings_returns_a_copy(self) -> None:
        """Mutating the returned settings does not affect the factory."""
        factory = EnvironmentFactory("SubscriptionId=a", environ={})
        factory.settings["subscription_id"] = "b"
        assert factory.settings["subscription_id"] == "a"

    def test_record_mode_stores_subscription(self, tmp_path: Path) -> None:
        """Record mode uses live settings and records the subscription."""
        factory = EnvironmentFactory(CONNECTION_STRING)
        context = _context(tmp_path)
        try:
            env = factory.get_test_environment(context)
        finally:
            context.dispose()
        assert env.subscription_id == SUBSCRIPTION_ID
        assert env.tenant_id == "tenant-1"
        assert env.access_token == "live-token"
        assert env.resource_manager_url == DEFAULT_RESOURCE_MANAGER_URL
        fixture = FixtureFile.load(context.fixture_path)
        assert fixture.variables == {"SubscriptionId": SUBSCRIPTION_ID}

    def test_record_mode_without_subscription_warns(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """A missing subscription falls back to the placeholder with a warning."""
        factory = EnvironmentFactory("", environ={})
        context = _context(tmp_path)
        try:
            with caplog.at_level(logging.WARNING, logger="scenario_mox.environment"):
                env = factory.get_test_environment(context)
        finally:
            context.dispose()
        assert env.subscription_id == PLAYBACK_SUBSCRIPTION_ID
        assert "No subscription configured" in caplog.text

    def test_playback_restores_recorded_subscription(self, tmp_path: Path) -> None:
        """Playback ignores the live subscription and uses the recorded one."""
        FixtureFile(
            version="1.0",
            metadata=FixtureMetadata.create(),
            variables={"SubscriptionId": "recorded-sub"},
        ).save(tmp_path / "pkg.Tests" / "test_env.json")
        factory = EnvironmentFactory(CONNECTION_STRING)
        with _context(tmp_path) as context:
            assert context.mode is HttpRecorderMode.PLAYBACK
            env = factory.get_test_environment(context)
        assert env.subscription_id == "recorded-sub"
        assert env.access_token == PLAYBACK_TOKEN
