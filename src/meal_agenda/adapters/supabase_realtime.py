"""Supabase Realtime watcher that re-fetches scoped snapshots on change."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine
from dataclasses import dataclass, field
from typing import Any, TypeVar
from uuid import uuid4

from supabase import AsyncClient

T = TypeVar("T")

_FAILED_STATES = {"CHANNEL_ERROR", "TIMED_OUT"}

_logger = logging.getLogger(__name__)


@dataclass
class RealtimeWatcher:
    """Subscribes to row changes for one user and reloads on each change."""

    client: AsyncClient
    _channels: set[Any] = field(default_factory=set)
    _tasks: set[asyncio.Task[Any]] = field(default_factory=set)

    def watch(
        self,
        table: str,
        user_id: str,
        load: Callable[[], Awaitable[T]],
        on_change: Callable[[T], None],
        on_error: Callable[[Exception], None] | None = None,
    ) -> Callable[[], None]:
        """Call ``on_change`` with a fresh ``load()`` after every row change.

        Snapshots are delivered in the order their loads were issued; a load
        that finishes after a newer one has been delivered is discarded.
        """
        loop = asyncio.get_running_loop()
        channel = self.client.channel(f"{table}:{user_id}:{uuid4().hex}")
        issued = 0
        delivered = 0
        active = True

        def report(exc: Exception) -> None:
            if not active:
                return
            if on_error is None:
                _logger.warning("Realtime %s failed: %s", table, exc)
                return
            on_error(exc)

        async def reload(sequence: int) -> None:
            nonlocal delivered
            try:
                snapshot = await load()
            except Exception as exc:
                report(exc)
                return
            if not active or sequence < delivered:
                return
            delivered = sequence
            on_change(snapshot)

        def handle_change(_payload: dict[str, Any]) -> None:
            nonlocal issued
            if not active:
                return
            issued += 1
            self._spawn(loop, reload(issued))

        def handle_status(status: object, err: Exception | None = None) -> None:
            if err is not None:
                report(err)
            elif str(getattr(status, "value", status)) in _FAILED_STATES:
                report(RuntimeError(f"Realtime channel {table}: {status}"))

        async def subscribe() -> None:
            try:
                await channel.subscribe(handle_status)
            except Exception as exc:
                report(exc)

        for event in ("INSERT", "UPDATE"):
            channel.on_postgres_changes(
                event=event,
                schema="public",
                table=table,
                filter=f"user_id=eq.{user_id}",
                callback=handle_change,
            )
        # DELETE payloads only carry the primary key unless the table uses
        # REPLICA IDENTITY FULL, so a user_id filter would never match.
        channel.on_postgres_changes(
            event="DELETE", schema="public", table=table, callback=handle_change
        )
        self._channels.add(channel)
        self._spawn(loop, subscribe())

        def unsubscribe() -> None:
            nonlocal active
            if not active:
                return
            active = False
            self._spawn(loop, self._remove(channel))

        return unsubscribe

    async def close(self) -> None:
        """Remove every open channel and wait for pending work."""
        for channel in list(self._channels):
            await self._remove(channel)
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _remove(self, channel: Any) -> None:
        if channel not in self._channels:
            return
        self._channels.discard(channel)
        try:
            await self.client.remove_channel(channel)
        except Exception:
            _logger.exception("Failed to remove realtime channel")

    def _spawn(
        self, loop: asyncio.AbstractEventLoop, coro: Coroutine[Any, Any, None]
    ) -> None:
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
