"""
One live auction view: the engine and everything that feeds it.

    source (pull/push) ──┐
                         ├─> engine ──> ViewState ──> clock, lifecycle, renderers
    clock (1 Hz tick) ───┘
    bidding ──> backend, then source.request_resync()
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Union

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.schedulers.base import BaseScheduler

from gavel.bidding import BidSubmissionCoordinator
from gavel.clock import LocalClock
from gavel.core import AuctionBackend, GavelError, ValidationError
from gavel.engine import Listener, ReconciliationEngine
from gavel.lifecycle import LifecycleController, validate_creation
from gavel.models import AuctionSnapshot, BidRecord, EventType, ViewState
from gavel.settings import Settings
from gavel.source import RemoteStateSource

log = logging.getLogger("gavel")

SWEEP_JOB_ID = "notification-sweep"


class AuctionSession:
    def __init__(
        self,
        backend: AuctionBackend,
        settings: Optional[Settings] = None,
        *,
        scheduler: Optional[BaseScheduler] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings or Settings()
        self.user_id = self.settings.resolve_user_id()
        self.backend = backend
        self.scheduler = scheduler or AsyncIOScheduler(timezone="UTC")
        timing = self.settings.timing

        self.engine = ReconciliationEngine(
            notification_seconds=timing.notification_seconds,
            ending_soon_seconds=timing.ending_soon_seconds,
            clock=clock,
        )
        self.source = RemoteStateSource(
            backend,
            self.engine,
            retry_backoff_seconds=self.settings.network.retry_backoff_seconds,
        )
        self.clock = LocalClock(
            self.scheduler,
            on_tick=self.engine.tick,
            on_expired=self._on_expired,
            seconds=timing.tick_seconds,
        )
        self.bidding = BidSubmissionCoordinator(backend, self.engine, self.source)
        self.lifecycle = LifecycleController()

        self.engine.subscribe(self.clock.observe)
        self.engine.subscribe(self.lifecycle.observe)

    @property
    def view(self) -> ViewState:
        return self.engine.view()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        return self.engine.subscribe(listener)

    async def start(self) -> ViewState:
        """Push subscription and scheduler jobs, then the initial pull."""
        if not self.scheduler.running:
            self.scheduler.start()
        self.scheduler.add_job(
            self._sweep,
            "interval",
            seconds=self.settings.timing.tick_seconds / 4,
            id=SWEEP_JOB_ID,
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        # subscribe first so nothing broadcast during the pull is missed
        self.source.start()
        view = await self.source.resync()
        log.info("Session started for %s", self.user_id)
        return view

    async def close(self) -> None:
        """Tear down every tick, event and pending resync of this view."""
        self.clock.teardown()
        await self.source.aclose()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        self.engine.reset()
        await self.backend.aclose()
        log.info("Session closed")

    async def __aenter__(self) -> AuctionSession:
        await self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    # ---------------- user intents ---------------- #

    async def place_bid(self, amount: Union[str, float, int]) -> BidRecord:
        return await self.bidding.submit(self.user_id, amount)

    async def create_auction(
        self,
        starting_bid: Union[str, float, int, None] = None,
        duration: Union[str, int, None] = None,
        extended_bidding: Optional[bool] = None,
    ) -> AuctionSnapshot:
        """Submit the creation form; omitted fields come from the pending form."""
        form = self.lifecycle.form
        if form is None:
            raise ValidationError("The create surface is not open")
        if starting_bid is not None:
            form.starting_bid = str(starting_bid)
        if duration is not None:
            form.duration = str(duration)
        if extended_bidding is not None:
            form.extended_bidding = extended_bidding
        form.error = None

        try:
            bid, seconds = validate_creation(form.starting_bid, form.duration)
            form.submitting = True
            snapshot = await self.backend.create_auction(
                bid, seconds, form.extended_bidding
            )
        except GavelError as exc:
            form.error = str(exc)
            log.warning("Auction creation failed: %s", exc)
            raise
        finally:
            form.submitting = False

        self.engine.apply_snapshot(snapshot, EventType.AUCTION_CREATED)
        self.lifecycle.created()
        return snapshot

    # ---------------- scheduler callbacks ---------------- #

    def _on_expired(self, auction_id: str) -> None:
        self.source.request_resync()

    async def _sweep(self) -> None:
        self.engine.sweep()
