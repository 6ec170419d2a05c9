import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.base import BaseScheduler

from gavel.models import ViewState

log = logging.getLogger("gavel.clock")


class LocalClock:
    """
    One-second countdown ticker for the auction on display.

    Driven entirely by the ViewStates it observes: it runs while the snapshot
    is ACTIVE, restarts its phase on every remote update, and fires
    `on_expired` once per auction when the displayed time reaches zero. It
    never decides that an auction has ENDED; that is the server's call.
    """

    def __init__(
        self,
        scheduler: BaseScheduler,
        on_tick: Callable[[], object],
        on_expired: Callable[[str], object],
        *,
        seconds: float = 1,
    ):
        self._scheduler = scheduler
        self._on_tick = on_tick
        self._on_expired = on_expired
        self._seconds = seconds
        self._auction_id: Optional[str] = None
        self._revision: Optional[int] = None
        self._expired = False
        self._job_id: Optional[str] = None

    @property
    def running(self) -> bool:
        return self._job_id is not None

    @property
    def expired(self) -> bool:
        return self._expired

    def observe(self, view: ViewState) -> None:
        snap = view.snapshot
        if snap is None:
            self.teardown()
            return
        if snap.id != self._auction_id:
            self.stop()
            self._auction_id = snap.id
            self._expired = False

        remote = view.revision != self._revision
        self._revision = view.revision

        if not snap.is_active:
            self.stop()
        elif view.displayed_time_remaining <= 0:
            self._expire(snap.id)
        elif remote:
            # fresh authoritative time: re-arm and restart the one-second phase
            self._expired = False
            self._start(snap.id)

    def teardown(self) -> None:
        self.stop()
        self._auction_id = None
        self._revision = None
        self._expired = False

    def stop(self) -> None:
        if self._job_id is None:
            return
        try:
            self._scheduler.remove_job(self._job_id)
        except JobLookupError:
            pass
        self._job_id = None

    # ---------------- internals ---------------- #

    def _start(self, auction_id: str) -> None:
        self.stop()
        job = self._scheduler.add_job(
            self._fire,
            "interval",
            seconds=self._seconds,
            next_run_time=datetime.now(timezone.utc) + timedelta(seconds=self._seconds),
            id=f"tick-{auction_id}",
            replace_existing=True,
            coalesce=True,
            max_instances=1,
            misfire_grace_time=1,
        )
        self._job_id = job.id

    async def _fire(self) -> None:
        self._on_tick()

    def _expire(self, auction_id: str) -> None:
        if self._expired:
            return
        self._expired = True
        self.stop()
        log.info("Countdown for %s reached zero; asking the server", auction_id)
        self._on_expired(auction_id)
