"""HTTP header subset filtering for session recordings.

Recordings keep only the headers that matter for replay.  Credentials never
reach the fixture file, and transport framing headers are dropped because the
recorded body is stored already decoded.
"""

from __future__ import annotations

import re
import typing as t

if t.TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

_SECRET_HEADER_RE: t.Final[re.Pattern[str]] = re.compile(
    r"(?i)(^|[_-])(KEY|TOKEN|SECRET|PASSWORD|CREDENTIALS?|SIGNATURE)(?=[_-]|\d|$)"
)

# Headers carrying credentials or session state.
SENSITIVE_HEADERS: t.Final[frozenset[str]] = frozenset(
    {
        "authorization",
        "proxy-authorization",
        "cookie",
        "set-cookie",
    }
)

# Framing headers that no longer describe the stored (decoded) body.
TRANSPORT_HEADERS: t.Final[frozenset[str]] = frozenset(
    {
        "content-length",
        "content-encoding",
        "transfer-encoding",
        "connection",
        "keep-alive",
    }
)


def is_sensitive_header(name: str) -> bool:
    """Return ``True`` when *name* looks like it carries a secret."""
    lowered = name.lower()
    return lowered in SENSITIVE_HEADERS or _SECRET_HEADER_RE.search(name) is not None


def filter_headers(
    headers: Mapping[str, str] | Iterable[tuple[str, str]],
    *,
    allowlist: Iterable[str] | None = None,
) -> dict[str, str]:
    """Return the subset of *headers* suitable for fixture persistence.

    Parameters
    ----------
    headers : Mapping[str, str] | Iterable[tuple[str, str]]
        Request or response headers.  Repeated names are joined with ``", "``.
    allowlist : Iterable[str] | None
        Header names (case-insensitive) to keep regardless of other rules.
    """
    allow = {name.lower() for name in allowlist or ()}
    items = headers.items() if hasattr(headers, "items") else headers

    result: dict[str, str] = {}
    for name, value in items:
        lowered = name.lower()
        if lowered not in allow:
            if is_sensitive_header(name):
                continue
            if lowered in TRANSPORT_HEADERS:
                continue
        if name in result:
            result[name] = f"{result[name]}, {value}"
        else:
            result[name] = value
    return result


__all__ = [
    "SENSITIVE_HEADERS",
    "TRANSPORT_HEADERS",
    "filter_headers",
    "is_sensitive_header",
]
