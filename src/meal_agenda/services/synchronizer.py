"""Fetch-then-listen synchronization for one date-scoped record stream."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date
from enum import StrEnum
from typing import Generic, TypeVar

from meal_agenda.domain.errors import ListenerError, TransientFetchError

T = TypeVar("T")

FetchFn = Callable[[date], Awaitable[T]]
SubscribeFn = Callable[
    [date, Callable[[T], None], Callable[[Exception], None]], Callable[[], None]
]
CancelHandle = Callable[[], None]

_logger = logging.getLogger(__name__)


class SyncState(StrEnum):
    """Lifecycle states of a synchronizer."""

    IDLE = "idle"
    LOADING = "loading"
    LIVE = "live"
    FAILED = "failed"
    TORN_DOWN = "torn_down"


@dataclass(frozen=True)
class SyncUpdate(Generic[T]):
    """Immutable event published after every accepted change."""

    source: str
    scope: date
    token: int
    records: T
    is_loading: bool
    error: str | None = None


class _Subscription:
    """Listener registration bound to a single scope token."""

    def __init__(self, token: int) -> None:
        self.token = token
        self._unsubscribe: CancelHandle | None = None
        self.closed = False

    def attach(self, unsubscribe: CancelHandle) -> None:
        if self.closed:
            unsubscribe()
            return
        self._unsubscribe = unsubscribe

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._unsubscribe is None:
            return
        try:
            self._unsubscribe()
        except Exception:
            _logger.exception("Unsubscribe failed for scope token %s", self.token)


class DocumentSynchronizer(Generic[T]):
    """Owns one subscription lifecycle for a date-scoped record stream.

    Every ``start`` bumps a monotonic scope token. Fetch results and listener
    updates carry the token they were issued under and are dropped when it is
    no longer current, so a slow fetch for an old date never overwrites data
    for the new one even if the transport keeps delivering after unsubscribe.
    """

    def __init__(
        self,
        source: str,
        fetch: FetchFn[T],
        subscribe: SubscribeFn[T],
        empty: T,
    ) -> None:
        self.source = source
        self._fetch = fetch
        self._subscribe = subscribe
        self._empty = empty
        self._token = 0
        self._scope: date | None = None
        self._records: T = empty
        self._state = SyncState.IDLE
        self._last_error: str | None = None
        self._listener_delivered = False
        self._on_update: Callable[[SyncUpdate[T]], None] | None = None
        self._subscription: _Subscription | None = None
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def token(self) -> int:
        return self._token

    @property
    def scope(self) -> date | None:
        return self._scope

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def records(self) -> T:
        return self._records

    @property
    def is_loading(self) -> bool:
        return self._state == SyncState.LOADING

    @property
    def last_error(self) -> str | None:
        return self._last_error

    def start(
        self, scope_key: date, on_update: Callable[[SyncUpdate[T]], None]
    ) -> CancelHandle:
        """Start syncing ``scope_key`` and return a handle that cancels it."""
        if self._subscription is not None:
            self._subscription.close()
        self._token += 1
        token = self._token
        self._scope = scope_key
        self._on_update = on_update
        self._records = self._empty
        self._state = SyncState.LOADING
        self._last_error = None
        self._listener_delivered = False
        _logger.debug("%s: start scope=%s token=%s", self.source, scope_key, token)
        self._publish()

        task = asyncio.get_running_loop().create_task(
            self._run_fetch(token, scope_key)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        subscription = _Subscription(token)
        self._subscription = subscription
        try:
            subscription.attach(
                self._subscribe(
                    scope_key,
                    lambda records: self._on_listener_change(token, records),
                    lambda exc: self._on_listener_error(token, exc),
                )
            )
        except Exception as exc:
            self._on_listener_error(token, exc)

        def cancel() -> None:
            self._cancel(subscription)

        return cancel

    async def settle(self) -> None:
        """Wait for in-flight fetches to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def _cancel(self, subscription: _Subscription) -> None:
        if subscription.token == self._token:
            self._token += 1
            self._state = SyncState.TORN_DOWN
            self._on_update = None
            _logger.debug("%s: torn down scope=%s", self.source, self._scope)
        subscription.close()
        if self._subscription is subscription:
            self._subscription = None

    async def _run_fetch(self, token: int, scope_key: date) -> None:
        try:
            records = await self._fetch(scope_key)
        except Exception as exc:
            if token != self._token:
                return
            _logger.warning("%s: fetch failed for %s: %s", self.source, scope_key, exc)
            if self._listener_delivered:
                return
            self._fail(TransientFetchError(str(exc)), clear=True)
            return
        if token != self._token:
            _logger.debug("%s: dropped stale fetch for %s", self.source, scope_key)
            return
        if self._listener_delivered:
            _logger.debug("%s: fetch superseded by listener", self.source)
            return
        self._records = records
        self._state = SyncState.LIVE
        self._publish()

    def _on_listener_change(self, token: int, records: T) -> None:
        if token != self._token:
            _logger.debug("%s: dropped stale listener update", self.source)
            return
        self._listener_delivered = True
        self._records = records
        self._state = SyncState.LIVE
        self._last_error = None
        self._publish()

    def _on_listener_error(self, token: int, exc: Exception) -> None:
        if token != self._token:
            return
        _logger.warning("%s: listener failed: %s", self.source, exc)
        self._fail(ListenerError(str(exc)), clear=False)

    def _fail(self, error: Exception, *, clear: bool) -> None:
        if clear:
            self._records = self._empty
        self._state = SyncState.FAILED
        self._last_error = f"{type(error).__name__}: {error}"
        self._publish()

    def _publish(self) -> None:
        if self._on_update is None or self._scope is None:
            return
        self._on_update(
            SyncUpdate(
                source=self.source,
                scope=self._scope,
                token=self._token,
                records=self._records,
                is_loading=self.is_loading,
                error=self._last_error,
            )
        )
