"""Fetch lifecycle used by pages: timeout, cancellation and empty detection."""

from .state import (
    DEFAULT_ERROR_MESSAGE,
    QUERY_TIMEOUT_SECONDS,
    TIMEOUT_MESSAGE,
    CancelToken,
    QueryCancelled,
    QuerySnapshot,
    QueryState,
    QueryStatus,
    is_empty_payload,
    run_query,
)

__all__ = [
    "DEFAULT_ERROR_MESSAGE",
    "QUERY_TIMEOUT_SECONDS",
    "TIMEOUT_MESSAGE",
    "CancelToken",
    "QueryCancelled",
    "QuerySnapshot",
    "QueryState",
    "QueryStatus",
    "is_empty_payload",
    "run_query",
]
