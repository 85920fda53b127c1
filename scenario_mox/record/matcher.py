"""Request matching for session-record playback.

Recorded and live requests are compared by a *matching key* built from the
HTTP method and the request URI.  Resource-provider endpoints drift their
``api-version`` query parameter between SDK releases, so the policy strips or
pins that parameter for selected providers and user agents before the key is
computed.  A request recorded against one api-version can then be replayed
by a client that asks for another.
"""

from __future__ import annotations

import base64
import dataclasses as dc
import re
import types
import typing as t

if t.TYPE_CHECKING:
    from collections.abc import Mapping

_API_VERSION_PARAM_RE: t.Final[re.Pattern[str]] = re.compile(
    r"([?&])api-version=[^&]+"
)
_TRAILING_API_VERSION_RE: t.Final[re.Pattern[str]] = re.compile(
    r"&api-version=[^&]+"
)
_LEADING_API_VERSION_RE: t.Final[re.Pattern[str]] = re.compile(
    r"\?api-version=[^&]+&*"
)

# Non-provider endpoints that must keep their api-version even when
# generic resource clients are ignored.
_GENERIC_URI_PREFIXES: t.Final[tuple[str, ...]] = (
    "/certificates?",
    "/pools",
    "/jobs",
    "/jobschedules",
)

DEFAULT_PROVIDERS: t.Final[Mapping[str, str | None]] = types.MappingProxyType(
    {
        "Microsoft.Resources": None,
        "Microsoft.Features": None,
        "Microsoft.Authorization": None,
        "Microsoft.Compute": None,
    }
)

DEFAULT_USER_AGENTS: t.Final[Mapping[str, str]] = types.MappingProxyType(
    {"Microsoft.Azure.Management.Resources.ResourceManagementClient": "2016-02-01"}
)


_V = t.TypeVar("_V")


def _freeze(mapping: Mapping[str, _V] | None) -> Mapping[str, _V]:
    return types.MappingProxyType(dict(mapping or {}))


def remove_or_replace_api_version(uri: str, version: str | None) -> str:
    """Pin ``api-version`` in *uri* to *version*, or drop it when unset.

    >>> remove_or_replace_api_version("/x?api-version=1&a=b", None)
    '/x?a=b'
    >>> remove_or_replace_api_version("/x?api-version=1", "2016-02-01")
    '/x?api-version=2016-02-01'
    """
    if version and version.strip():
        return _API_VERSION_PARAM_RE.sub(rf"\g<1>api-version={version}", uri)
    result = _TRAILING_API_VERSION_RE.sub("", uri)
    return _LEADING_API_VERSION_RE.sub("?", result)


@dc.dataclass(frozen=True, slots=True)
class MatcherPolicy:
    """Describe which request details are ignored when matching recordings.

    Parameters
    ----------
    ignore_resource_clients : bool
        Drop ``api-version`` from URIs that address no ``providers/`` segment
        (resource-group and subscription level calls).
    providers : Mapping[str, str | None]
        Provider namespace -> api-version.  URIs containing the namespace have
        their api-version pinned to the value, or removed when it is ``None``.
    user_agents : Mapping[str, str]
        User-agent fragment -> api-version, consulted only when no provider
        namespace matched the URI.
    """

    ignore_resource_clients: bool = True
    providers: Mapping[str, str | None] = dc.field(default_factory=dict)
    user_agents: Mapping[str, str] = dc.field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "providers", _freeze(self.providers))
        object.__setattr__(self, "user_agents", _freeze(self.user_agents))

    def _ignored_provider(self, uri: str) -> tuple[bool, str | None]:
        """Return whether *uri* is covered by the policy and the pinned version."""
        if (
            self.ignore_resource_clients
            and "providers/" not in uri
            and not uri.lower().startswith(_GENERIC_URI_PREFIXES)
            and "/applications?" not in uri
        ):
            return True, None
        for namespace, version in self.providers.items():
            if namespace in uri:
                return True, version
        return False, None

    def _ignored_user_agent(self, user_agent: str) -> tuple[bool, str | None]:
        for fragment, version in self.user_agents.items():
            if fragment in user_agent:
                return True, version
        return False, None

    def normalize_uri(self, uri: str, headers: Mapping[str, str]) -> str:
        """Return *uri* with the api-version rewritten per this policy."""
        uri = uri.replace("?&", "?")
        ignored, version = self._ignored_provider(uri)
        if not ignored and self.user_agents:
            agent = _header(headers, "user-agent")
            ignored, version = self._ignored_user_agent(agent)
        if ignored:
            return remove_or_replace_api_version(uri, version)
        return uri

    def matching_key(self, method: str, uri: str, headers: Mapping[str, str]) -> str:
        """Return the key used to pair live requests with recorded entries."""
        normalized = self.normalize_uri(uri, headers)
        encoded = base64.b64encode(normalized.encode("utf-8")).decode("ascii")
        return f"{method.upper()} {encoded}"


def _header(headers: Mapping[str, str], name: str) -> str:
    """Case-insensitive header lookup returning ``""`` when absent."""
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return ""


def default_matcher_policy() -> MatcherPolicy:
    """Return the policy used for recovery-services backup scenarios."""
    return MatcherPolicy(
        ignore_resource_clients=True,
        providers=DEFAULT_PROVIDERS,
        user_agents=DEFAULT_USER_AGENTS,
    )


__all__ = [
    "DEFAULT_PROVIDERS",
    "DEFAULT_USER_AGENTS",
    "MatcherPolicy",
    "default_matcher_policy",
    "remove_or_replace_api_version",
]
