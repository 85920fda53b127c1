"""Record/replay of HTTP interactions as versioned session records."""

from __future__ import annotations

from .context import HttpRecorderMode, MockContext, fixture_path_for, resolve_mode
from .fixture import FixtureFile, FixtureMetadata, RecordedEntry
from .header_filter import filter_headers, is_sensitive_header
from .matcher import MatcherPolicy, default_matcher_policy

__all__ = [
    "FixtureFile",
    "FixtureMetadata",
    "HttpRecorderMode",
    "MatcherPolicy",
    "MockContext",
    "RecordedEntry",
    "default_matcher_policy",
    "filter_headers",
    "fixture_path_for",
    "is_sensitive_header",
    "resolve_mode",
]
