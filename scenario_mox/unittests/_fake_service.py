"""A fake management endpoint used as the live transport in record mode."""

from __future__ import annotations

import typing as t

import httpx

SUBSCRIPTION_ID: t.Final[str] = "11111111-2222-3333-4444-555555555555"
CONNECTION_STRING: t.Final[str] = (
    f"SubscriptionId={SUBSCRIPTION_ID};AADTenant=tenant-1;RawToken=live-token"
)


class FakeManagementService:
    """Answer a handful of resource-manager and vault routes.

    Every request is kept in :attr:`requests` so tests can tell whether a
    session reached the live service.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.endswith("/backupProtectedItems"):
            return httpx.Response(200, json={"value": [{"name": "vm1"}]})
        if path.endswith("/backupJobs"):
            return httpx.Response(200, json={"value": [{"name": "job-1"}]})
        if "/vaults/" in path:
            return httpx.Response(200, json={"name": path.rsplit("/", 1)[-1]})
        if "/resourceGroups/" in path:
            return httpx.Response(
                200, json={"name": path.rsplit("/", 1)[-1], "location": "westus"}
            )
        return httpx.Response(404, json={"error": {"code": "NotFound"}})


__all__ = ["CONNECTION_STRING", "SUBSCRIPTION_ID", "FakeManagementService"]
