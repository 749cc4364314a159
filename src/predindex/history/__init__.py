"""Named-range history queries for the presentation layer."""

from predindex.history.ranges import DEFAULT_RANGE, RANGE_WINDOWS_MS, query_history, resolve_range

__all__ = ["DEFAULT_RANGE", "RANGE_WINDOWS_MS", "query_history", "resolve_range"]
