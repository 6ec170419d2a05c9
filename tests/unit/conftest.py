"""Shared fixtures: a controllable clock, snapshot/event factories and a fake server."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Callable, Optional

import pytest

from gavel.core import AuctionBackend
from gavel.engine import ReconciliationEngine
from gavel.models import (
    AuctionEvent,
    AuctionSnapshot,
    AuctionStatus,
    BidRecord,
    EventType,
    PartialSnapshot,
)


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_snapshot(**overrides: Any) -> AuctionSnapshot:
    data: dict[str, Any] = {
        "id": "auction-1",
        "starting_bid": 100.0,
        "current_bid": 100.0,
        "current_winner": None,
        "duration": 30,
        "extended_bidding": True,
        "status": AuctionStatus.ACTIVE,
        "next_bid": 101.0,
        "time_remaining": 30,
    }
    data.update(overrides)
    return AuctionSnapshot(**data)


def make_event(event_type: Optional[EventType], **overrides: Any) -> AuctionEvent:
    data: dict[str, Any] = {
        "id": "auction-1",
        "current_bid": 100.0,
        "current_winner": None,
        "status": AuctionStatus.ACTIVE,
        "next_bid": 101.0,
        "time_remaining": 30,
    }
    data.update(overrides)
    return AuctionEvent(type=event_type, auction=PartialSnapshot(**data))


class FakeBackend(AuctionBackend):
    """In-process stand-in for the auction server."""

    def __init__(self, current: Optional[AuctionSnapshot] = None) -> None:
        self.current = current
        self.fetch_error: Optional[Exception] = None
        self.fetch_calls = 0
        self.release_fetch: Optional[asyncio.Event] = None

        self.bid_error: Optional[Exception] = None
        self.bid_calls: list[tuple[str, float]] = []
        self.release_bid: Optional[asyncio.Event] = None

        self.create_error: Optional[Exception] = None
        self.created: list[tuple[float, int, bool]] = []

        self.pushed: asyncio.Queue = asyncio.Queue()
        self.subscriptions = 0
        self.closed = False

    async def fetch_current(self) -> Optional[AuctionSnapshot]:
        self.fetch_calls += 1
        if self.release_fetch is not None:
            await self.release_fetch.wait()
        if self.fetch_error is not None:
            raise self.fetch_error
        return self.current

    async def create_auction(
        self, starting_bid: float, duration: int, extended_bidding: bool
    ) -> AuctionSnapshot:
        self.created.append((starting_bid, duration, extended_bidding))
        if self.create_error is not None:
            raise self.create_error
        self.current = make_snapshot(
            id=f"auction-{len(self.created)}",
            starting_bid=starting_bid,
            current_bid=starting_bid,
            duration=duration,
            extended_bidding=extended_bidding,
            next_bid=starting_bid + 1,
            time_remaining=duration,
        )
        return self.current

    async def place_bid(self, user_id: str, amount: float) -> BidRecord:
        self.bid_calls.append((user_id, amount))
        if self.release_bid is not None:
            await self.release_bid.wait()
        if self.bid_error is not None:
            raise self.bid_error
        return BidRecord(
            id=f"bid-{len(self.bid_calls)}",
            user_id=user_id,
            amount=amount,
            timestamp=datetime(2026, 1, 1, tzinfo=timezone.utc),
        )

    async def events(self) -> AsyncIterator[AuctionEvent]:
        self.subscriptions += 1
        while True:
            item = await self.pushed.get()
            if item is None:
                return
            if isinstance(item, Exception):
                raise item
            yield item

    async def aclose(self) -> None:
        self.closed = True


async def _eventually(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    async def wait() -> None:
        while not predicate():
            await asyncio.sleep(0)

    await asyncio.wait_for(wait(), timeout)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def engine(clock: FakeClock) -> ReconciliationEngine:
    return ReconciliationEngine(notification_seconds=3, clock=clock)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def snapshot():
    return make_snapshot


@pytest.fixture
def event():
    return make_event


@pytest.fixture
def eventually():
    return _eventually
