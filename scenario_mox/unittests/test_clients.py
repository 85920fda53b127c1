"""Unit tests for service clients and the per-session client set."""

from __future__ import annotations

import json
import typing as t

import httpx
import pytest

from scenario_mox.clients import (
    CLIENT_SPECS,
    ClientRole,
    ServiceClient,
    ServiceClientSet,
    build_client_set,
)
from scenario_mox.environment import TestEnvironment
from scenario_mox.record.context import MockContext
from scenario_mox.record.matcher import default_matcher_policy

if t.TYPE_CHECKING:
    from pathlib import Path

    from scenario_mox.unittests._fake_service import FakeManagementService


class _Capture:
    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(200, json={})


def _environment(token: str | None = "tok") -> TestEnvironment:
    return TestEnvironment(
        subscription_id="sub-1",
        tenant_id="t1",
        resource_manager_url="https://rm.example/",
        access_token=token,
    )


class TestServiceClient:
    """Tests for :class:`ServiceClient`."""

    def test_request_carries_identity_headers(self) -> None:
        """User-Agent, Accept and bearer token are sent with each request."""
        capture = _Capture()
        spec = CLIENT_SPECS[ClientRole.BACKUP]
        client = ServiceClient(spec, _environment(), transport=capture.transport)
        client.get("/subscriptions/sub-1")
        request = capture.requests[0]
        assert request.headers["User-Agent"] == spec.user_agent
        assert request.headers["Accept"] == "application/json"
        assert request.headers["Authorization"] == "Bearer tok"
        assert request.url.host == "rm.example"

    def test_no_token_means_no_authorization(self) -> None:
        """Clients without a token send no Authorization header."""
        capture = _Capture()
        client = ServiceClient(
            CLIENT_SPECS[ClientRole.BACKUP],
            _environment(token=None),
            transport=capture.transport,
        )
        client.delete("/x")
        assert "Authorization" not in capture.requests[0].headers
        assert capture.requests[0].method == "DELETE"

    def test_api_version_is_the_first_query_parameter(self) -> None:
        """The client's api-version leads the query string."""
        capture = _Capture()
        client = ServiceClient(
            CLIENT_SPECS[ClientRole.RECOVERY_VAULT],
            _environment(),
            transport=capture.transport,
        )
        client.get("/x", params={"$top": "5"})
        request = capture.requests[0]
        assert request.url.query.startswith(b"api-version=2016-06-01&")
        assert request.url.params["$top"] == "5"

    def test_api_version_override(self) -> None:
        """Callers may pin a different api-version per request."""
        capture = _Capture()
        client = ServiceClient(
            CLIENT_SPECS[ClientRole.RESOURCE_MANAGER],
            _environment(),
            transport=capture.transport,
        )
        client.put("/x", api_version="2020-01-01", json={"location": "westus"})
        request = capture.requests[0]
        assert request.url.params["api-version"] == "2020-01-01"
        assert json.loads(request.content) == {"location": "westus"}

    @pytest.mark.parametrize(
        ("parts", "expected"),
        [
            ((), "/subscriptions/sub-1"),
            (("resourceGroups", "rg1"), "/subscriptions/sub-1/resourceGroups/rg1"),
            (("/providers/X/",), "/subscriptions/sub-1/providers/X"),
        ],
    )
    def test_subscription_path(self, parts: tuple[str, ...], expected: str) -> None:
        """Paths are rooted at the environment's subscription."""
        client = ServiceClient(
            CLIENT_SPECS[ClientRole.BACKUP],
            _environment(),
            transport=_Capture().transport,
        )
        assert client.subscription_path(*parts) == expected

    def test_close(self) -> None:
        """close() releases the HTTP client."""
        client = ServiceClient(
            CLIENT_SPECS[ClientRole.BACKUP],
            _environment(),
            transport=_Capture().transport,
        )
        assert not client.is_closed
        client.close()
        assert client.is_closed


def test_client_specs_cover_every_role() -> None:
    """Each role has a spec whose role matches its key."""
    assert set(CLIENT_SPECS) == set(ClientRole)
    assert all(spec.role is role for role, spec in CLIENT_SPECS.items())
    legacy = CLIENT_SPECS[ClientRole.LEGACY_RESOURCE_MANAGER]
    assert legacy.user_agent.startswith(
        "Microsoft.Azure.Management.Resources.ResourceManagementClient/"
    )


class TestServiceClientSet:
    """Tests for building and indexing a session's client set."""

    def test_build_registers_clients_with_context(
        self, tmp_path: Path, fake_service: FakeManagementService
    ) -> None:
        """Every client is created through, and owned by, the context."""
        with MockContext.start(
            "pkg.Tests",
            "test_clients",
            records_dir=tmp_path,
            matcher=default_matcher_policy(),
            live_transport=fake_service.transport,
        ) as context:
            clients = build_client_set(context, _environment())
            assert isinstance(clients, ServiceClientSet)
            assert len(context.clients) == len(ClientRole)
            assert set(context.clients) == set(clients)
        assert all(client.is_closed for client in clients)

    def test_lookup_by_role(
        self, tmp_path: Path, fake_service: FakeManagementService
    ) -> None:
        """Clients can be looked up by role or role value."""
        with MockContext.start(
            "pkg.Tests",
            "test_clients",
            records_dir=tmp_path,
            matcher=default_matcher_policy(),
            live_transport=fake_service.transport,
        ) as context:
            clients = build_client_set(context, _environment())
            assert clients[ClientRole.BACKUP] is clients.backup
            assert clients["recovery-vault"] is clients.recovery_vault
            assert list(clients.by_role()) == list(ClientRole)
            with pytest.raises(ValueError):  # noqa: PT011
                clients["unknown"]
