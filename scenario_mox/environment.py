"""Test environment settings for scenario sessions.

The environment factory turns a connection string into the subscription,
tenant, endpoint, and token that service clients are built with.  In playback
the subscription is restored from the session record so replays do not depend
on the machine that runs them.
"""

from __future__ import annotations

import dataclasses as dc
import logging
import os
import typing as t

from scenario_mox.record.context import HttpRecorderMode

if t.TYPE_CHECKING:
    from collections.abc import Mapping

    from scenario_mox.record.context import MockContext

logger = logging.getLogger(__name__)

TEST_CONNECTION_STRING_ENV: t.Final[str] = "TEST_CSM_ORGID_AUTHENTICATION"
DEFAULT_RESOURCE_MANAGER_URL: t.Final[str] = "https://management.azure.com/"
PLAYBACK_SUBSCRIPTION_ID: t.Final[str] = "00000000-0000-0000-0000-000000000000"
PLAYBACK_TENANT_ID: t.Final[str] = "00000000-0000-0000-0000-000000000000"
PLAYBACK_TOKEN: t.Final[str] = "fake-token"  # noqa: S105 - playback placeholder

SUBSCRIPTION_ID_VARIABLE: t.Final[str] = "SubscriptionId"

_KEY_ALIASES: t.Final[dict[str, str]] = {
    "subscriptionid": "subscription_id",
    "aadtenant": "tenant_id",
    "tenantid": "tenant_id",
    "resourcemanagementuri": "resource_manager_url",
    "rawtoken": "access_token",
}


@dc.dataclass(frozen=True, slots=True)
class TestEnvironment:
    """Endpoints and credentials service clients are created with."""

    __test__: t.ClassVar[bool] = False  # not a pytest test class

    subscription_id: str
    tenant_id: str
    resource_manager_url: str = DEFAULT_RESOURCE_MANAGER_URL
    access_token: str | None = None


def parse_connection_string(value: str) -> dict[str, str]:
    """Parse ``Key=Value;Key=Value`` into settings keyed by field name.

    Keys are case-insensitive; unknown keys are ignored.  A value may itself
    contain ``=`` (tokens often do).

    >>> parse_connection_string("SubscriptionId=abc;AADTenant=t1")
    {'subscription_id': 'abc', 'tenant_id': 't1'}
    """
    settings: dict[str, str] = {}
    for segment in value.split(";"):
        if not segment.strip():
            continue
        key, sep, raw = segment.partition("=")
        if not sep:
            msg = f"Malformed connection string segment {segment!r}; expected Key=Value"
            raise ValueError(msg)
        field = _KEY_ALIASES.get(key.strip().lower())
        if field is not None:
            settings[field] = raw.strip()
    return settings


class EnvironmentFactory:
    """Produce :class:`TestEnvironment` values for a session.

    Initialize hooks receive the factory before clients are built and may
    override individual settings for the tests that need it.

    Parameters
    ----------
    connection_string : str | None
        Explicit connection string.  When omitted it is read from *env_var*
        in *environ* (``os.environ`` by default).
    """

    def __init__(
        self,
        connection_string: str | None = None,
        *,
        env_var: str = TEST_CONNECTION_STRING_ENV,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        source = os.environ if environ is None else environ
        raw = connection_string if connection_string is not None else source.get(
            env_var, ""
        )
        self._settings = parse_connection_string(raw)

    @property
    def settings(self) -> dict[str, str]:
        """Return a copy of the parsed settings."""
        return dict(self._settings)

    def set_subscription(self, subscription_id: str) -> None:
        """Override the subscription used in record mode."""
        self._settings["subscription_id"] = subscription_id

    def set_token(self, token: str) -> None:
        """Override the bearer token used in record mode."""
        self._settings["access_token"] = token

    def set_endpoint(self, resource_manager_url: str) -> None:
        """Override the resource manager endpoint."""
        self._settings["resource_manager_url"] = resource_manager_url

    def get_test_environment(self, context: MockContext) -> TestEnvironment:
        """Return the environment for *context*.

        Record mode uses the configured settings and stores the subscription
        as a session variable; playback restores it from the record and uses
        a placeholder token.
        """
        endpoint = self._settings.get(
            "resource_manager_url", DEFAULT_RESOURCE_MANAGER_URL
        )
        if context.mode is HttpRecorderMode.PLAYBACK:
            subscription = context.get_variable(
                SUBSCRIPTION_ID_VARIABLE, PLAYBACK_SUBSCRIPTION_ID
            )
            return TestEnvironment(
                subscription_id=subscription,
                tenant_id=self._settings.get("tenant_id", PLAYBACK_TENANT_ID),
                resource_manager_url=endpoint,
                access_token=PLAYBACK_TOKEN,
            )

        subscription = self._settings.get("subscription_id")
        if not subscription:
            logger.warning(
                "No subscription configured in %s; recording against %s",
                TEST_CONNECTION_STRING_ENV,
                PLAYBACK_SUBSCRIPTION_ID,
            )
            subscription = PLAYBACK_SUBSCRIPTION_ID
        context.get_variable(SUBSCRIPTION_ID_VARIABLE, subscription)
        return TestEnvironment(
            subscription_id=subscription,
            tenant_id=self._settings.get("tenant_id", PLAYBACK_TENANT_ID),
            resource_manager_url=endpoint,
            access_token=self._settings.get("access_token"),
        )


__all__ = [
    "DEFAULT_RESOURCE_MANAGER_URL",
    "PLAYBACK_SUBSCRIPTION_ID",
    "PLAYBACK_TOKEN",
    "TEST_CONNECTION_STRING_ENV",
    "EnvironmentFactory",
    "TestEnvironment",
    "parse_connection_string",
]
