"""Query state machine: idle -> loading -> (success | empty | error).

A ``QueryState`` wraps a fetcher ``fetcher(cancel_token) -> result``. Every
invocation gets a stamp and its own ``CancelToken``; results are only
committed while their stamp is the current one, so a slow invocation that
finishes after a newer one started never overwrites newer state.
"""

from __future__ import annotations

import itertools
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass
from enum import Enum
from typing import Any

from flask import current_app, has_app_context

from eco.errors import QueryTimeout

QUERY_TIMEOUT_SECONDS = 10.0
TIMEOUT_MESSAGE = "Demorou demais"
DEFAULT_ERROR_MESSAGE = "Erro inesperado"

TIMEOUT_REASON = "timeout"
SUPERSEDED_REASON = "superseded"
DISPOSED_REASON = "disposed"

ERROR_KIND_TIMEOUT = "timeout"
ERROR_KIND_FAILURE = "failure"

_thread_ids = itertools.count(1)


class QueryStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    EMPTY = "empty"
    ERROR = "error"


class QueryCancelled(Exception):
    """Raised inside a fetcher that noticed its token was cancelled."""

    def __init__(self, reason: str | None = None) -> None:
        super().__init__(reason or "cancelled")
        self.reason = reason


class CancelToken:
    """Cooperative cancellation signal handed to each fetch invocation."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise QueryCancelled(self.reason)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or ``timeout`` elapses; True if cancelled."""
        return self._event.wait(timeout)


def is_empty_payload(result: Any) -> bool:
    """None, an empty list/tuple, or anything whose ``items`` list is empty."""
    if result is None:
        return True
    if isinstance(result, (list, tuple)):
        return len(result) == 0
    if isinstance(result, dict):
        items = result.get("items")
    else:
        items = getattr(result, "items", None)
    return isinstance(items, (list, tuple)) and len(items) == 0


@dataclass(frozen=True)
class QuerySnapshot:
    """An immutable view of a query's state, safe to hand to templates."""

    status: QueryStatus
    data: Any = None
    error: str | None = None
    error_kind: str | None = None

    @property
    def is_loading(self) -> bool:
        return self.status == QueryStatus.LOADING

    @property
    def is_success(self) -> bool:
        return self.status == QueryStatus.SUCCESS

    @property
    def is_empty(self) -> bool:
        return self.status == QueryStatus.EMPTY

    @property
    def is_error(self) -> bool:
        return self.status == QueryStatus.ERROR

    @property
    def is_timeout(self) -> bool:
        return self.error_kind == ERROR_KIND_TIMEOUT


class QueryState:
    """Runs a fetcher with a timeout and tracks the result."""

    def __init__(
        self,
        fetcher: Callable[[CancelToken], Any],
        deps: Sequence[Any] = (),
        timeout: float = QUERY_TIMEOUT_SECONDS,
    ) -> None:
        self.fetcher = fetcher
        self.deps = tuple(deps)
        self.timeout = timeout
        self._lock = threading.Lock()
        self._stamp = 0
        self._token: CancelToken | None = None
        self._disposed = False
        self.status = QueryStatus.IDLE
        self.data: Any = None
        self.error: str | None = None
        self.error_kind: str | None = None

    def _begin(self) -> tuple[int, CancelToken]:
        with self._lock:
            if self._disposed:
                raise RuntimeError("QueryState has been disposed.")
            if self._token is not None:
                self._token.cancel(SUPERSEDED_REASON)
            self._stamp += 1
            token = CancelToken()
            self._token = token
            self.error = None
            self.error_kind = None
            self.status = QueryStatus.LOADING
            return self._stamp, token

    def _commit(
        self,
        stamp: int,
        status: QueryStatus,
        data: Any = None,
        error: str | None = None,
        error_kind: str | None = None,
    ) -> bool:
        with self._lock:
            if stamp != self._stamp:
                return False
            self.status = status
            self.data = data
            self.error = error
            self.error_kind = error_kind
            return True

    def run(self) -> QuerySnapshot:
        """Start a new invocation and wait for it (at most ``timeout``)."""
        stamp, token = self._begin()
        app = current_app._get_current_object() if has_app_context() else None
        future = self._start(app, token)
        try:
            result = future.result(timeout=self.timeout)
        except FutureTimeout:
            token.cancel(TIMEOUT_REASON)
            self._log(f"Query timed out after {self.timeout}s")
            self._commit(
                stamp,
                QueryStatus.ERROR,
                error=QueryTimeout(TIMEOUT_MESSAGE).message,
                error_kind=ERROR_KIND_TIMEOUT,
            )
        except QueryCancelled as e:
            # Only reachable when superseded or disposed; the stamp check drops it.
            self._commit(
                stamp,
                QueryStatus.ERROR,
                error=str(e) or DEFAULT_ERROR_MESSAGE,
                error_kind=ERROR_KIND_FAILURE,
            )
        except Exception as e:
            self._log(f"Query failed: {e}")
            self._commit(
                stamp,
                QueryStatus.ERROR,
                error=str(e) or DEFAULT_ERROR_MESSAGE,
                error_kind=ERROR_KIND_FAILURE,
            )
        else:
            status = (
                QueryStatus.EMPTY if is_empty_payload(result) else QueryStatus.SUCCESS
            )
            self._commit(stamp, status, data=result)
        return self.snapshot()

    def _start(self, app: Any, token: CancelToken) -> Future:
        """Run the fetcher on its own daemon thread.

        A fetcher that ignores its token after a timeout only holds its own
        thread, so later invocations never queue behind it.
        """
        future: Future = Future()

        def target() -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                result = self._call(app, token)
            except BaseException as e:
                future.set_exception(e)
            else:
                future.set_result(result)

        thread = threading.Thread(
            target=target, name=f"eco-query-{next(_thread_ids)}", daemon=True
        )
        thread.start()
        return future

    def _call(self, app: Any, token: CancelToken) -> Any:
        if app is None:
            return self.fetcher(token)
        with app.app_context():
            return self.fetcher(token)

    def refetch(self) -> QuerySnapshot:
        return self.run()

    def update_deps(self, deps: Sequence[Any]) -> QuerySnapshot:
        """Re-run only when the dependency tuple changed."""
        deps = tuple(deps)
        if deps == self.deps and self.status != QueryStatus.IDLE:
            return self.snapshot()
        self.deps = deps
        return self.run()

    def dispose(self) -> None:
        """Cancel the in-flight invocation and ignore anything it returns."""
        with self._lock:
            self._disposed = True
            self._stamp += 1
            if self._token is not None:
                self._token.cancel(DISPOSED_REASON)

    def snapshot(self) -> QuerySnapshot:
        with self._lock:
            return QuerySnapshot(self.status, self.data, self.error, self.error_kind)

    @staticmethod
    def _log(message: str) -> None:
        if has_app_context():
            current_app.logger.warning(message)


def run_query(
    fetcher: Callable[[CancelToken], Any],
    timeout: float = QUERY_TIMEOUT_SECONDS,
) -> QuerySnapshot:
    """Run a one-shot query, as page views do."""
    return QueryState(fetcher, timeout=timeout).run()
