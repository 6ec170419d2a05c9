"""
Reconciliation of the three sources that move the live view:

  * pulled snapshots (startup and forced resyncs)
  * pushed auction events
  * local one-second ticks

Remote data always replaces whatever the ticks predicted. A countdown that
goes *up* on a BID_PLACED event is how the server tells us it extended the
auction, so that is what raises the `extended` notification.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from gavel.models import (
    AuctionEvent,
    AuctionSnapshot,
    EventType,
    NotificationKind,
    TransientNotification,
    ViewState,
)

log = logging.getLogger("gavel.engine")

Listener = Callable[[ViewState], None]


def detect_extension(
    old_time: int, new_time: int, event_type: Optional[EventType]
) -> bool:
    return event_type is EventType.BID_PLACED and new_time > old_time


class NotificationBoard:
    """
    Transient notifications keyed by kind, each with an absolute expiry.

    Posting a kind that is already live replaces it and restarts its window.
    Expired entries are dropped by `prune`, which the owner calls from a single
    periodic job instead of arming one timer per notification.
    """

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic):
        self._ttl = ttl
        self._clock = clock
        self._live: dict[NotificationKind, TransientNotification] = {}

    def post(
        self, kind: NotificationKind, message: str, ttl: Optional[float] = None
    ) -> TransientNotification:
        note = TransientNotification(
            kind=kind,
            message=message,
            expires_at=self._clock() + (self._ttl if ttl is None else ttl),
        )
        self._live[kind] = note
        return note

    def prune(self) -> bool:
        now = self._clock()
        expired = [k for k, n in self._live.items() if n.expired(now)]
        for kind in expired:
            del self._live[kind]
        return bool(expired)

    def active(self) -> tuple[TransientNotification, ...]:
        self.prune()
        return tuple(self._live.values())

    def clear(self) -> None:
        self._live.clear()


class ReconciliationEngine:
    """Sole owner of the authoritative snapshot and the derived ViewState."""

    def __init__(
        self,
        *,
        notification_seconds: float = 3,
        ending_soon_seconds: int = 10,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._board = NotificationBoard(notification_seconds, clock)
        self._ending_soon_seconds = ending_soon_seconds
        self._listeners: list[Listener] = []

        self._last_snapshot: Optional[AuctionSnapshot] = None
        self._displayed = 0
        self._previous_time = 0
        self._fetch_error: Optional[str] = None
        self._revision = 0

    # ---------------- observers ---------------- #

    @property
    def snapshot(self) -> Optional[AuctionSnapshot]:
        return self._last_snapshot

    @property
    def displayed_time_remaining(self) -> int:
        return self._displayed

    @property
    def previous_time_remaining(self) -> int:
        return self._previous_time

    def view(self) -> ViewState:
        return ViewState(
            snapshot=self._last_snapshot,
            displayed_time_remaining=self._displayed,
            notifications=self._board.active(),
            fetch_error=self._fetch_error,
            ending_soon_seconds=self._ending_soon_seconds,
            revision=self._revision,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self) -> ViewState:
        view = self.view()
        for listener in list(self._listeners):
            listener(view)
        return view

    # ---------------- remote input ---------------- #

    def apply_pull(self, snapshot: Optional[AuctionSnapshot]) -> ViewState:
        """Result of a successful pull; `None` means there is no auction."""
        self._fetch_error = None
        if snapshot is None:
            if self._last_snapshot is not None:
                log.info("Server reports no current auction")
            self._last_snapshot = None
            self._displayed = 0
            self._previous_time = 0
            self._revision += 1
            return self._emit()
        return self.apply_snapshot(snapshot)

    def apply_event(self, event: AuctionEvent) -> bool:
        """
        Apply one pushed event. Returns False when the event could not be
        fully reconciled (stale or unknown auction) and a pull is advisable.
        """
        if event.error:
            log.warning("Push channel reported: %s", event.error)
        if event.auction is None:
            return True

        current = self._last_snapshot
        same_auction = current is not None and current.id == event.auction.id
        if not same_auction and current is not None and event.type in (
            EventType.BID_PLACED,
            EventType.AUCTION_ENDED,
        ):
            log.debug(
                "Dropping %s for auction %s (showing %s)",
                event.type.value,
                event.auction.id,
                current.id,
            )
            return False

        self.apply_snapshot(event.auction.merge_into(current), event.type)
        return same_auction

    def apply_snapshot(
        self, snapshot: AuctionSnapshot, event_type: Optional[EventType] = None
    ) -> ViewState:
        new_time = snapshot.time_remaining
        old_time = self._previous_time
        # previous time only means something for the auction it was read from
        known = self._last_snapshot is not None and self._last_snapshot.id == snapshot.id
        log.info(
            "%s update for %s: %ss -> %ss (%s, next bid $%.2f)",
            event_type.value if event_type else "PULL",
            snapshot.id,
            old_time,
            new_time,
            snapshot.status.value,
            snapshot.next_bid,
        )

        self._last_snapshot = snapshot
        self._displayed = new_time
        if known and detect_extension(old_time, new_time, event_type):
            log.info("Auction extended: %ss -> %ss", old_time, new_time)
            self._board.post(
                NotificationKind.EXTENDED,
                f"Auction extended: {old_time}s -> {new_time}s",
            )
        self._previous_time = new_time
        self._revision += 1
        return self._emit()

    def report_fetch_error(self, message: str) -> ViewState:
        self._fetch_error = message
        return self._emit()

    # ---------------- local input ---------------- #

    def tick(self) -> int:
        """One local second elapsed; never touches the snapshot itself."""
        if self._last_snapshot is None:
            return 0
        self._displayed = max(self._displayed - 1, 0)
        self._emit()
        return self._displayed

    def notify(
        self, kind: NotificationKind, message: str
    ) -> TransientNotification:
        note = self._board.post(kind, message)
        self._emit()
        return note

    def sweep(self) -> bool:
        """Drop expired notifications; listeners only hear about actual changes."""
        changed = self._board.prune()
        if changed:
            self._emit()
        return changed

    def reset(self) -> None:
        self._board.clear()
        self._listeners.clear()
