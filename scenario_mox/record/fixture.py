"""Session-record file models for HTTP record/replay.

A session record holds every HTTP exchange captured while a scenario ran in
record mode, plus the generated asset names and named variables the scenario
asked for.  Files are versioned JSON; older layouts are migrated forward when
loaded.
"""

from __future__ import annotations

import base64
import dataclasses as dc
import datetime as dt
import importlib.metadata
import json
import sys
import typing as t

from scenario_mox.errors import FixtureError

if t.TYPE_CHECKING:
    from pathlib import Path

_SCHEMA_VERSION: t.Final[str] = "1.0"

# ---------------------------------------------------------------------------
# Schema version parsing and migration
# ---------------------------------------------------------------------------

_MigrationFn: t.TypeAlias = t.Callable[[dict[str, t.Any]], dict[str, t.Any]]


def _parse_version(version_str: str) -> tuple[int, int]:
    """Parse a ``"major.minor"`` version string into a comparable tuple.

    Raises
    ------
    FixtureError
        If the string cannot be parsed as two dot-separated integers.
    """
    parts = version_str.strip().split(".")
    if len(parts) != 2:
        msg = f"Invalid schema version {version_str!r}; expected 'major.minor'"
        raise FixtureError(msg)
    try:
        major, minor = int(parts[0]), int(parts[1])
    except ValueError:
        msg = f"Invalid schema version {version_str!r}; expected numeric 'major.minor'"
        raise FixtureError(msg) from None
    if major < 0 or minor < 0:
        msg = f"Invalid schema version {version_str!r}; components must be non-negative"
        raise FixtureError(msg)
    return (major, minor)


def _migrate_v0_to_v1(data: dict[str, t.Any]) -> dict[str, t.Any]:
    """Migrate an unversioned record (PascalCase ``Entries`` layout) to v1.0."""
    entries = data.pop("Entries", None)
    if entries is not None and "entries" not in data:
        data["entries"] = [
            {
                "request_method": e.get("RequestMethod", "GET"),
                "request_uri": e.get("RequestUri", "/"),
                "request_headers": _flatten_header_lists(e.get("RequestHeaders")),
                "request_body": e.get("RequestBody") or "",
                "status_code": e.get("StatusCode", 200),
                "response_headers": _flatten_header_lists(e.get("ResponseHeaders")),
                "response_body": e.get("ResponseBody") or "",
            }
            for e in entries
        ]
    if "Names" in data and "names" not in data:
        data["names"] = data.pop("Names")
    if "Variables" in data and "variables" not in data:
        data["variables"] = data.pop("Variables")
    data.setdefault("metadata", {})
    data["version"] = "1.0"
    return data


def _flatten_header_lists(headers: t.Any) -> dict[str, str]:
    if not isinstance(headers, dict):
        return {}
    return {
        str(k): ", ".join(v) if isinstance(v, list) else str(v)
        for k, v in headers.items()
    }


# Maps source *major* version -> (target version tuple, migration function).
_MIGRATIONS: dict[int, tuple[tuple[int, int], _MigrationFn]] = {
    0: ((1, 0), _migrate_v0_to_v1),
}


def _normalize_version_field(data: dict[str, t.Any]) -> None:
    """Ensure *data* has a valid ``version`` field, mutating in-place.

    A missing ``version`` key is treated as ``"0.0"``.  An explicit ``None``
    value is an invalid type, not a missing key.
    """
    if "version" not in data:
        data["version"] = "0.0"
    elif not isinstance(data["version"], str):
        actual = type(data["version"]).__name__
        msg = f"Invalid fixture version field: expected str, got {actual}"
        raise FixtureError(msg)


def _apply_migrations(data: dict[str, t.Any]) -> dict[str, t.Any]:
    """Bring *data* up to the current schema, chaining migrations by major."""
    data = dict(data)
    _normalize_version_field(data)

    current = _parse_version(_SCHEMA_VERSION)
    file_ver = _parse_version(data["version"])

    # Same major version: tolerate minor differences.
    if file_ver[0] == current[0]:
        return data

    if file_ver > current:
        msg = (
            f"Unsupported fixture schema version {data['version']!r}; "
            f"no migration path to {_SCHEMA_VERSION!r}"
        )
        raise FixtureError(msg)

    while file_ver[0] < current[0]:
        entry = _MIGRATIONS.get(file_ver[0])
        if entry is None:
            msg = (
                f"No migration path from schema version "
                f"{data['version']!r} to {_SCHEMA_VERSION!r}"
            )
            raise FixtureError(msg)
        target, migrate_fn = entry
        data = migrate_fn(data)
        file_ver = target
    return data


def _package_version() -> str:
    """Return the installed scenario-mox version, or ``"unknown"``."""
    try:
        return importlib.metadata.version("scenario-mox")
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


def encode_body(content: bytes) -> tuple[str, str]:
    """Return ``(text, encoding)`` for storing *content* in JSON."""
    try:
        return content.decode("utf-8"), "utf-8"
    except UnicodeDecodeError:
        return base64.b64encode(content).decode("ascii"), "base64"


def decode_body(text: str, encoding: str) -> bytes:
    """Invert :func:`encode_body`."""
    if encoding == "base64":
        return base64.b64decode(text)
    return text.encode("utf-8")


@dc.dataclass(slots=True)
class RecordedEntry:
    """One HTTP request/response pair captured in record mode."""

    request_method: str
    request_uri: str
    request_headers: dict[str, str]
    request_body: str
    status_code: int
    response_headers: dict[str, str]
    response_body: str
    response_encoding: str = "utf-8"
    request_encoding: str = "utf-8"

    @property
    def request_content(self) -> bytes:
        """Return the request body as bytes."""
        return decode_body(self.request_body, self.request_encoding)

    @property
    def response_content(self) -> bytes:
        """Return the response body as bytes."""
        return decode_body(self.response_body, self.response_encoding)

    def to_dict(self) -> dict[str, t.Any]:
        """Return a JSON-serializable mapping matching the v1.0 schema."""
        return {
            "request_method": self.request_method,
            "request_uri": self.request_uri,
            "request_headers": dict(self.request_headers),
            "request_body": self.request_body,
            "request_encoding": self.request_encoding,
            "status_code": self.status_code,
            "response_headers": dict(self.response_headers),
            "response_body": self.response_body,
            "response_encoding": self.response_encoding,
        }

    @classmethod
    def from_dict(cls, data: dict[str, t.Any]) -> RecordedEntry:
        """Construct from a JSON-compatible mapping."""
        return cls(
            request_method=str(data["request_method"]).upper(),
            request_uri=str(data["request_uri"]),
            request_headers={
                str(k): str(v) for k, v in data.get("request_headers", {}).items()
            },
            request_body=str(data.get("request_body", "")),
            status_code=int(data.get("status_code", 200)),
            response_headers={
                str(k): str(v) for k, v in data.get("response_headers", {}).items()
            },
            response_body=str(data.get("response_body", "")),
            response_encoding=str(data.get("response_encoding", "utf-8")),
            request_encoding=str(data.get("request_encoding", "utf-8")),
        )


@dc.dataclass(slots=True)
class FixtureMetadata:
    """Metadata captured alongside session records."""

    created_at: str
    scenario_mox_version: str
    platform: str
    python_version: str
    test_class: str | None = None
    test_name: str | None = None

    def to_dict(self) -> dict[str, t.Any]:
        """Return a JSON-serializable mapping."""
        d: dict[str, t.Any] = {
            "created_at": self.created_at,
            "scenario_mox_version": self.scenario_mox_version,
            "platform": self.platform,
            "python_version": self.python_version,
        }
        if self.test_class is not None:
            d["test_class"] = self.test_class
        if self.test_name is not None:
            d["test_name"] = self.test_name
        return d

    @classmethod
    def from_dict(cls, data: dict[str, t.Any]) -> FixtureMetadata:
        """Construct from a JSON-compatible mapping.

        Records migrated from the unversioned layout carry no metadata, so
        every field falls back to ``"unknown"``.
        """
        raw_class = data.get("test_class")
        raw_name = data.get("test_name")
        return cls(
            created_at=str(data.get("created_at", "unknown")),
            scenario_mox_version=str(data.get("scenario_mox_version", "unknown")),
            platform=str(data.get("platform", "unknown")),
            python_version=str(data.get("python_version", "unknown")),
            test_class=raw_class if isinstance(raw_class, str) else None,
            test_name=raw_name if isinstance(raw_name, str) else None,
        )

    @classmethod
    def create(
        cls,
        *,
        test_class: str | None = None,
        test_name: str | None = None,
    ) -> FixtureMetadata:
        """Auto-populate metadata from the current runtime environment."""
        return cls(
            created_at=dt.datetime.now(dt.UTC).isoformat(),
            scenario_mox_version=_package_version(),
            platform=sys.platform,
            python_version=sys.version,
            test_class=test_class,
            test_name=test_name,
        )


@dc.dataclass(slots=True)
class FixtureFile:
    """A complete session record: metadata, exchanges, names and variables."""

    SCHEMA_VERSION: t.ClassVar[str] = _SCHEMA_VERSION

    version: str
    metadata: FixtureMetadata
    entries: list[RecordedEntry] = dc.field(default_factory=list)
    names: dict[str, list[str]] = dc.field(default_factory=dict)
    variables: dict[str, str] = dc.field(default_factory=dict)

    def to_dict(self) -> dict[str, t.Any]:
        """Return a JSON-serializable mapping matching the v1.0 schema."""
        return {
            "version": self.version,
            "metadata": self.metadata.to_dict(),
            "entries": [e.to_dict() for e in self.entries],
            "names": {k: list(v) for k, v in self.names.items()},
            "variables": dict(self.variables),
        }

    @classmethod
    def from_dict(cls, data: dict[str, t.Any]) -> FixtureFile:
        """Construct from a JSON-compatible mapping, migrating older schemas."""
        data = _apply_migrations(data)
        try:
            return cls(
                version=cls.SCHEMA_VERSION,
                metadata=FixtureMetadata.from_dict(data.get("metadata") or {}),
                entries=[RecordedEntry.from_dict(e) for e in data.get("entries", [])],
                names={
                    str(k): [str(n) for n in v]
                    for k, v in data.get("names", {}).items()
                },
                variables={
                    str(k): str(v) for k, v in data.get("variables", {}).items()
                },
            )
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            msg = f"Malformed session record: {exc}"
            raise FixtureError(msg) from exc

    def save(self, path: Path) -> None:
        """Write this record to *path* as JSON, creating directories as needed."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2) + "\n", encoding="utf-8")

    @classmethod
    def load(cls, path: Path) -> FixtureFile:
        """Load a session record from a JSON file at *path*."""
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except OSError as exc:
            msg = f"Cannot read session record {path}: {exc}"
            raise FixtureError(msg) from exc
        except json.JSONDecodeError as exc:
            msg = f"Session record {path} is not valid JSON: {exc}"
            raise FixtureError(msg) from exc
        if not isinstance(data, dict):
            msg = f"Session record {path} must contain a JSON object"
            raise FixtureError(msg)
        return cls.from_dict(data)


__all__ = [
    "FixtureFile",
    "FixtureMetadata",
    "RecordedEntry",
    "decode_body",
    "encode_body",
]
