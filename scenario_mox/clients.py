"""Service client handles bound to a session context."""

from __future__ import annotations

import dataclasses as dc
import enum
import typing as t

import httpx

if t.TYPE_CHECKING:
    from collections.abc import Iterator

    from scenario_mox.environment import TestEnvironment
    from scenario_mox.record.context import MockContext


class ClientRole(enum.StrEnum):
    """Logical roles of the clients a scenario session provides."""

    BACKUP = "backup-service"
    RECOVERY_VAULT = "recovery-vault"
    RESOURCE_MANAGER = "resource-manager"
    LEGACY_RESOURCE_MANAGER = "legacy-resource-manager"


@dc.dataclass(frozen=True, slots=True)
class ClientSpec:
    """Identity and default api-version of a management client."""

    role: ClientRole
    product: str
    api_version: str
    product_version: str = "1.0.0"

    @property
    def user_agent(self) -> str:
        """User-Agent header value; the request matcher keys off ``product``."""
        return f"{self.product}/{self.product_version}"


CLIENT_SPECS: t.Final[dict[ClientRole, ClientSpec]] = {
    ClientRole.BACKUP: ClientSpec(
        ClientRole.BACKUP,
        "Microsoft.Azure.Management.RecoveryServices.Backup.RecoveryServicesBackupClient",
        "2016-12-01",
    ),
    ClientRole.RECOVERY_VAULT: ClientSpec(
        ClientRole.RECOVERY_VAULT,
        "Microsoft.Azure.Management.RecoveryServices.RecoveryServicesClient",
        "2016-06-01",
    ),
    ClientRole.RESOURCE_MANAGER: ClientSpec(
        ClientRole.RESOURCE_MANAGER,
        "Microsoft.Azure.Management.ResourceManager.ResourceManagementClient",
        "2017-05-10",
    ),
    ClientRole.LEGACY_RESOURCE_MANAGER: ClientSpec(
        ClientRole.LEGACY_RESOURCE_MANAGER,
        "Microsoft.Azure.Management.Resources.ResourceManagementClient",
        "2016-02-01",
    ),
}


class ServiceClient:
    """Thin REST handle for one management API.

    Construction performs no I/O; every request goes through *transport*,
    which the owning session context routes to record or playback.
    """

    def __init__(
        self,
        spec: ClientSpec,
        environment: TestEnvironment,
        *,
        transport: httpx.BaseTransport,
    ) -> None:
        self.spec = spec
        self.environment = environment
        headers = {"User-Agent": spec.user_agent, "Accept": "application/json"}
        if environment.access_token:
            headers["Authorization"] = f"Bearer {environment.access_token}"
        self._http = httpx.Client(
            base_url=environment.resource_manager_url,
            headers=headers,
            transport=transport,
        )

    @property
    def role(self) -> ClientRole:
        """The role this client fills in its session."""
        return self.spec.role

    @property
    def is_closed(self) -> bool:
        """Return ``True`` once :meth:`close` has run."""
        return self._http.is_closed

    def subscription_path(self, *parts: str) -> str:
        """Return ``/subscriptions/<id>/<parts...>`` for the session subscription."""
        tail = "/".join(p.strip("/") for p in parts if p)
        base = f"/subscriptions/{self.environment.subscription_id}"
        return f"{base}/{tail}" if tail else base

    def request(
        self,
        method: str,
        path: str,
        *,
        api_version: str | None = None,
        params: dict[str, str] | None = None,
        json: t.Any = None,
    ) -> httpx.Response:
        """Send a request with ``api-version`` set and return the response."""
        query = {"api-version": api_version or self.spec.api_version}
        query.update(params or {})
        return self._http.request(method, path, params=query, json=json)

    def get(self, path: str, **kwargs: t.Any) -> httpx.Response:
        """Send a ``GET`` request."""
        return self.request("GET", path, **kwargs)

    def put(self, path: str, **kwargs: t.Any) -> httpx.Response:
        """Send a ``PUT`` request."""
        return self.request("PUT", path, **kwargs)

    def post(self, path: str, **kwargs: t.Any) -> httpx.Response:
        """Send a ``POST`` request."""
        return self.request("POST", path, **kwargs)

    def delete(self, path: str, **kwargs: t.Any) -> httpx.Response:
        """Send a ``DELETE`` request."""
        return self.request("DELETE", path, **kwargs)

    def close(self) -> None:
        """Release the underlying HTTP client."""
        self._http.close()

    def __repr__(self) -> str:
        return f"ServiceClient(role={self.role!s}, api_version={self.spec.api_version})"


@dc.dataclass(frozen=True, slots=True)
class ServiceClientSet:
    """The fixed set of clients owned by one session.

    Created once per session and never mutated; the session context closes
    the clients when it is disposed.
    """

    backup: ServiceClient
    recovery_vault: ServiceClient
    resource_manager: ServiceClient
    legacy_resource_manager: ServiceClient

    def __getitem__(self, role: ClientRole | str) -> ServiceClient:
        return getattr(self, ClientRole(role).name.lower())

    def __iter__(self) -> Iterator[ServiceClient]:
        return iter(self.by_role().values())

    def by_role(self) -> dict[ClientRole, ServiceClient]:
        """Return the clients keyed by role."""
        return {role: self[role] for role in ClientRole}


def build_client_set(
    context: MockContext, environment: TestEnvironment
) -> ServiceClientSet:
    """Create every session client through *context*."""
    clients = {
        role.name.lower(): context.get_service_client(spec, environment)
        for role, spec in CLIENT_SPECS.items()
    }
    return ServiceClientSet(**clients)


__all__ = [
    "CLIENT_SPECS",
    "ClientRole",
    "ClientSpec",
    "ServiceClient",
    "ServiceClientSet",
    "build_client_set",
]
