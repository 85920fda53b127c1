"""MockContext: the scoped record/replay context for one scenario session.

A context is keyed by ``(calling class, session name)`` and owns every service
client created under it.  In record mode requests go to a live transport and
each exchange is captured; in playback mode requests are answered from the
session record on disk.  ``dispose()`` closes the clients and, in record
mode, persists the session record.

Lifecycle: ``MockContext.start()`` -> requests / asset names -> ``dispose()``.
"""

from __future__ import annotations

import collections
import enum
import logging
import random
import threading
import typing as t
from pathlib import Path

import httpx

from scenario_mox.clients import ServiceClient
from scenario_mox.errors import LifecycleError, ReplayMismatchError

from .fixture import FixtureFile, FixtureMetadata, RecordedEntry, encode_body
from .header_filter import TRANSPORT_HEADERS, filter_headers

if t.TYPE_CHECKING:
    import types
    from collections.abc import Mapping

    from scenario_mox.clients import ClientSpec
    from scenario_mox.environment import TestEnvironment

    from .matcher import MatcherPolicy

logger = logging.getLogger(__name__)


class HttpRecorderMode(enum.StrEnum):
    """Whether a session captures live traffic or replays a record."""

    RECORD = "record"
    PLAYBACK = "playback"


def fixture_path_for(
    records_dir: Path | str, calling_class: str, session_name: str
) -> Path:
    """Return the session-record path for ``(calling_class, session_name)``."""
    return Path(records_dir) / calling_class / f"{session_name}.json"


def resolve_mode(
    fixture_path: Path, mode: HttpRecorderMode | str | None = None
) -> tuple[HttpRecorderMode, str]:
    """Return the recorder mode for *fixture_path* and the reason it was chosen.

    An explicit *mode* always wins.  Otherwise an existing session record
    selects playback and a missing one selects record.
    """
    if mode is not None:
        return HttpRecorderMode(str(mode).lower()), "explicitly requested"
    if fixture_path.is_file():
        return HttpRecorderMode.PLAYBACK, f"session record {fixture_path} exists"
    return HttpRecorderMode.RECORD, f"no session record at {fixture_path}"


def _request_uri(request: httpx.Request) -> str:
    return request.url.raw_path.decode("ascii")


def _strip_transport_headers(headers: Mapping[str, str]) -> dict[str, str]:
    return {k: v for k, v in headers.items() if k.lower() not in TRANSPORT_HEADERS}


class MockContext:
    """Coordinate record/replay of HTTP interactions for one test session.

    Parameters
    ----------
    calling_class : str
        Fully qualified name of the test class; names the record directory.
    session_name : str
        Test (method) name; names the record file.
    records_dir : Path | str
        Root directory holding session records.
    matcher : MatcherPolicy
        Policy used to pair live requests with recorded entries.
    mode : HttpRecorderMode | str | None
        Force record or playback.  When ``None`` the mode follows whether the
        session record exists on disk.
    live_transport : httpx.BaseTransport | None
        Transport used to reach the real service in record mode.  A default
        ``httpx.HTTPTransport`` is created (and owned) when omitted.
    """

    # Track the open context per thread; sessions never nest.
    _state: t.ClassVar[threading.local] = threading.local()

    @classmethod
    def get_active_context(cls) -> MockContext | None:
        """Return the open context for the current thread, if any."""
        return getattr(cls._state, "active_context", None)

    @classmethod
    def reset_active_context(cls) -> None:
        """Clear any open context for the current thread."""
        cls._state.active_context = None

    def __init__(
        self,
        calling_class: str,
        session_name: str,
        *,
        records_dir: Path | str,
        matcher: MatcherPolicy,
        mode: HttpRecorderMode | str | None = None,
        live_transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.calling_class = calling_class
        self.session_name = session_name
        self.matcher = matcher
        self._fixture_path = fixture_path_for(records_dir, calling_class, session_name)
        self._requested_mode = mode
        self._mode: HttpRecorderMode | None = None
        self._live_transport = live_transport
        self._owns_live_transport = False
        self._transport = httpx.MockTransport(self._handle_request)

        self._clients: list[ServiceClient] = []
        self._entries: list[RecordedEntry] = []
        self._names: dict[str, list[str]] = {}
        self._variables: dict[str, str] = {}
        self._pending: dict[str, collections.deque[RecordedEntry]] = {}
        self._name_cursor: dict[str, int] = {}
        self._lock = threading.Lock()
        self._random = random.Random()  # noqa: S311 - asset names, not secrets
        self._started = False
        self._disposed = False
        self._fixture_file: FixtureFile | None = None

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------
    @classmethod
    def start(
        cls,
        calling_class: str,
        session_name: str,
        *,
        records_dir: Path | str,
        matcher: MatcherPolicy,
        mode: HttpRecorderMode | str | None = None,
        live_transport: httpx.BaseTransport | None = None,
    ) -> MockContext:
        """Create and open a context for ``(calling_class, session_name)``."""
        context = cls(
            calling_class,
            session_name,
            records_dir=records_dir,
            matcher=matcher,
            mode=mode,
            live_transport=live_transport,
        )
        context.open()
        return context

    def open(self) -> None:
        """Select the mode, load the record in playback, and activate.

        Raises
        ------
        LifecycleError
            If this context was already opened, or another context is open on
            the current thread.
        FixtureError
            If playback is selected and the session record cannot be loaded.
        """
        if self._started:
            msg = "MockContext has already been started"
            raise LifecycleError(msg)
        active = type(self).get_active_context()
        if active is not None:
            msg = (
                f"MockContext for {active.calling_class}.{active.session_name} "
                "is still open; session contexts cannot be nested"
            )
            raise LifecycleError(msg)

        mode, reason = resolve_mode(self._fixture_path, self._requested_mode)
        if mode is HttpRecorderMode.PLAYBACK:
            self._load_playback(FixtureFile.load(self._fixture_path))
        elif self._live_transport is None:
            self._live_transport = httpx.HTTPTransport()
            self._owns_live_transport = True

        self._mode = mode
        self._started = True
        type(self)._state.active_context = self
        logger.info(
            "Session %s.%s running in %s mode (%s)",
            self.calling_class,
            self.session_name,
            mode,
            reason,
        )

    def _load_playback(self, fixture: FixtureFile) -> None:
        for entry in fixture.entries:
            key = self.matcher.matching_key(
                entry.request_method, entry.request_uri, entry.request_headers
            )
            self._pending.setdefault(key, collections.deque()).append(entry)
        self._names = {k: list(v) for k, v in fixture.names.items()}
        self._variables = dict(fixture.variables)
        self._fixture_file = fixture

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def mode(self) -> HttpRecorderMode:
        """Return the recorder mode chosen when the context was opened."""
        if self._mode is None:
            msg = "MockContext has not been started; call start() first"
            raise LifecycleError(msg)
        return self._mode

    @property
    def fixture_path(self) -> Path:
        """The session-record file for this context."""
        return self._fixture_path

    @property
    def is_disposed(self) -> bool:
        """Return ``True`` once :meth:`dispose` has run."""
        return self._disposed

    @property
    def transport(self) -> httpx.BaseTransport:
        """Transport that routes requests through record or playback."""
        return self._transport

    @property
    def clients(self) -> tuple[ServiceClient, ...]:
        """Clients created under this context, in creation order."""
        return tuple(self._clients)

    @property
    def recorded_entries(self) -> tuple[RecordedEntry, ...]:
        """Exchanges captured so far (record mode)."""
        return tuple(self._entries)

    @property
    def unused_entries(self) -> int:
        """Number of recorded entries not yet served (playback mode)."""
        return sum(len(queue) for queue in self._pending.values())

    def _require_open(self, action: str) -> None:
        if not self._started:
            msg = f"Cannot {action}: MockContext has not been started"
            raise LifecycleError(msg)
        if self._disposed:
            msg = f"Cannot {action}: MockContext has been disposed"
            raise LifecycleError(msg)

    # ------------------------------------------------------------------
    # Clients, names and variables
    # ------------------------------------------------------------------
    def get_service_client(
        self, spec: ClientSpec, environment: TestEnvironment
    ) -> ServiceClient:
        """Return a client for *spec* bound to this context's transport."""
        self._require_open("create a service client")
        client = ServiceClient(spec, environment, transport=self._transport)
        self._clients.append(client)
        logger.debug("Created %s client for %s", spec.role, self.session_name)
        return client

    def get_asset_name(self, test_name: str, prefix: str) -> str:
        """Return a resource name that is stable across record and playback."""
        self._require_open("generate an asset name")
        if self.mode is HttpRecorderMode.RECORD:
            name = f"{prefix}{self._random.randint(0, 9999)}"
            self._names.setdefault(test_name, []).append(name)
            return name

        recorded = self._names.get(test_name, [])
        cursor = self._name_cursor.get(test_name, 0)
        if cursor >= len(recorded):
            msg = (
                f"Session record {self._fixture_path} holds no further asset "
                f"names for {test_name!r}"
            )
            raise ReplayMismatchError(msg)
        self._name_cursor[test_name] = cursor + 1
        return recorded[cursor]

    def get_variable(self, name: str, default: str) -> str:
        """Record *default* under *name*, or return the recorded value."""
        self._require_open("read a session variable")
        if self.mode is HttpRecorderMode.RECORD:
            self._variables[name] = default
            return default
        try:
            return self._variables[name]
        except KeyError:
            msg = f"Session record {self._fixture_path} has no variable {name!r}"
            raise ReplayMismatchError(msg) from None

    # ------------------------------------------------------------------
    # Transport handling
    # ------------------------------------------------------------------
    def _handle_request(self, request: httpx.Request) -> httpx.Response:
        self._require_open("send a request")
        if self.mode is HttpRecorderMode.RECORD:
            return self._record(request)
        return self._replay(request)

    def _record(self, request: httpx.Request) -> httpx.Response:
        live = t.cast("httpx.BaseTransport", self._live_transport)
        upstream = live.handle_request(request)
        try:
            content = upstream.read()
        finally:
            upstream.close()

        body, encoding = encode_body(content)
        request_body, request_encoding = encode_body(request.content)
        with self._lock:
            self._entries.append(
                RecordedEntry(
                    request_method=request.method,
                    request_uri=_request_uri(request),
                    request_headers=filter_headers(request.headers.multi_items()),
                    request_body=request_body,
                    status_code=upstream.status_code,
                    response_headers=filter_headers(upstream.headers.multi_items()),
                    response_body=body,
                    response_encoding=encoding,
                    request_encoding=request_encoding,
                )
            )
        logger.debug(
            "Recorded %s %s -> %d", request.method, request.url, upstream.status_code
        )
        return httpx.Response(
            upstream.status_code,
            headers=_strip_transport_headers(upstream.headers),
            content=content,
            request=request,
        )

    def _replay(self, request: httpx.Request) -> httpx.Response:
        uri = _request_uri(request)
        key = self.matcher.matching_key(request.method, uri, request.headers)
        with self._lock:
            queue = self._pending.get(key)
            entry = queue.popleft() if queue else None
        if entry is None:
            msg = (
                f"Unable to find a matching HTTP request for URL "
                f"'{request.method} {uri}' in {self._fixture_path}"
            )
            raise ReplayMismatchError(msg)
        logger.debug("Replayed %s %s -> %d", request.method, uri, entry.status_code)
        return httpx.Response(
            entry.status_code,
            headers=_strip_transport_headers(entry.response_headers),
            content=entry.response_content,
            request=request,
        )

    # ------------------------------------------------------------------
    # Disposal
    # ------------------------------------------------------------------
    def _build_fixture(self) -> FixtureFile:
        return FixtureFile(
            version=FixtureFile.SCHEMA_VERSION,
            metadata=FixtureMetadata.create(
                test_class=self.calling_class, test_name=self.session_name
            ),
            entries=list(self._entries),
            names={k: list(v) for k, v in self._names.items()},
            variables=dict(self._variables),
        )

    def _release_resources(self, errors: list[Exception]) -> None:
        for client in reversed(self._clients):
            try:
                client.close()
            except Exception as exc:  # noqa: BLE001 - collected and re-raised
                errors.append(exc)
        if self._owns_live_transport and self._live_transport is not None:
            try:
                self._live_transport.close()
            except Exception as exc:  # noqa: BLE001 - collected and re-raised
                errors.append(exc)

    def _persist(self, errors: list[Exception]) -> None:
        if self._mode is not HttpRecorderMode.RECORD:
            if self.unused_entries:
                logger.debug(
                    "%d recorded entries were not replayed for %s.%s",
                    self.unused_entries,
                    self.calling_class,
                    self.session_name,
                )
            return
        fixture = self._build_fixture()
        try:
            fixture.save(self._fixture_path)
        except OSError as exc:
            errors.append(exc)
            return
        self._fixture_file = fixture
        logger.info(
            "Wrote %d entries to session record %s",
            len(fixture.entries),
            self._fixture_path,
        )

    def dispose(self, exc_type: type[BaseException] | None = None) -> None:
        """Close clients, persist the record, and release the active slot.

        Idempotent.  The active slot is always released; the first error hit
        while closing clients or writing the record is re-raised afterwards,
        unless the caller is already propagating an exception (*exc_type*).
        """
        if self._disposed or not self._started:
            return
        self._disposed = True
        errors: list[Exception] = []
        try:
            self._release_resources(errors)
            self._persist(errors)
        finally:
            if type(self).get_active_context() is self:
                type(self).reset_active_context()
        if errors:
            logger.warning(
                "MockContext cleanup encountered errors: %s",
                "; ".join(str(e) for e in errors),
            )
            if exc_type is None:
                raise errors[0]

    def __enter__(self) -> MockContext:
        """Open the context if needed and return it."""
        if not self._started:
            self.open()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: types.TracebackType | None,
    ) -> None:
        """Dispose the context."""
        self.dispose(exc_type)


__all__ = [
    "HttpRecorderMode",
    "MockContext",
    "fixture_path_for",
    "resolve_mode",
]
