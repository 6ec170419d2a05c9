"""Pull + push channels of the auction server, normalized into engine input."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Optional

from gavel.core import AuctionBackend, TransportError
from gavel.engine import ReconciliationEngine
from gavel.models import AuctionEvent, ViewState

log = logging.getLogger("gavel.source")


class RemoteStateSource:
    def __init__(
        self,
        backend: AuctionBackend,
        engine: ReconciliationEngine,
        *,
        retry_backoff_seconds: float = 5,
    ) -> None:
        self._backend = backend
        self._engine = engine
        self._backoff = retry_backoff_seconds
        self._resync_task: Optional[asyncio.Task] = None
        self._push_task: Optional[asyncio.Task] = None
        self.pulls = 0

    # ---------------- pull ---------------- #

    async def pull(self) -> ViewState:
        """Fetch the current auction; a failure is recorded, never raised."""
        self.pulls += 1
        try:
            snapshot = await self._backend.fetch_current()
        except TransportError as exc:
            log.warning("Snapshot fetch failed: %s", exc)
            return self._engine.report_fetch_error(f"Could not load auction: {exc}")
        except Exception as exc:
            log.exception("Unexpected error while fetching the auction")
            return self._engine.report_fetch_error(f"Could not load auction: {exc}")
        try:
            return self._engine.apply_pull(snapshot)
        except Exception:
            log.exception("Failed to apply pulled snapshot")
            return self._engine.view()

    def request_resync(self) -> asyncio.Task:
        """Forced resync. Requests made while one is in flight join it."""
        if self._resync_task is None or self._resync_task.done():
            self._resync_task = asyncio.create_task(self.pull(), name="gavel-resync")
        else:
            log.debug("Resync already in flight")
        return self._resync_task

    async def resync(self) -> ViewState:
        return await asyncio.shield(self.request_resync())

    # ---------------- push ---------------- #

    def dispatch(self, event: AuctionEvent) -> None:
        try:
            applied = self._engine.apply_event(event)
        except Exception:
            log.exception("Failed to apply %s event", event.type)
            applied = False
        if not applied:
            self.request_resync()

    def start(self) -> None:
        if self._push_task is None or self._push_task.done():
            self._push_task = asyncio.create_task(self._run_push(), name="gavel-push")

    async def _run_push(self) -> None:
        while True:
            try:
                async for event in self._backend.events():
                    self.dispatch(event)
                log.warning("Push channel closed by server")
            except TransportError as exc:
                log.warning("Push channel dropped: %s", exc)
            except Exception:
                log.exception("Push channel failed")
            await asyncio.sleep(self._backoff)
            log.info("Re-subscribing to auction events")
            self.request_resync()

    async def aclose(self) -> None:
        tasks = [t for t in (self._push_task, self._resync_task) if t is not None]
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._push_task = None
        self._resync_task = None
