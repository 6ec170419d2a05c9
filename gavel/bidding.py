from __future__ import annotations

import asyncio
import logging
import math
from typing import Union

from gavel.core import (
    AuctionBackend,
    BidInFlightError,
    SubmissionError,
    TransportError,
    ValidationError,
)
from gavel.engine import ReconciliationEngine
from gavel.models import BidRecord, NotificationKind, SubmissionPhase, SubmissionState
from gavel.source import RemoteStateSource

log = logging.getLogger("gavel.bidding")


def parse_amount(amount: Union[str, float, int]) -> float:
    if isinstance(amount, bool):
        raise ValidationError("Please enter a valid bid amount")
    try:
        value = float(amount)
    except (TypeError, ValueError):
        raise ValidationError("Please enter a valid bid amount") from None
    if not math.isfinite(value):
        raise ValidationError("Please enter a valid bid amount")
    return value


class BidSubmissionCoordinator:
    """
    Runs one bid at a time against the server.

    The coordinator never guesses the resulting price or winner: on success
    it asks for a resync and lets the server's snapshot flow in through the
    engine like any other update.
    """

    def __init__(
        self,
        backend: AuctionBackend,
        engine: ReconciliationEngine,
        source: RemoteStateSource,
    ) -> None:
        self._backend = backend
        self._engine = engine
        self._source = source
        self._state = SubmissionState()

    @property
    def state(self) -> SubmissionState:
        return self._state

    @property
    def in_flight(self) -> bool:
        return self._state.phase is SubmissionPhase.IN_FLIGHT

    async def submit(self, user_id: str, amount: Union[str, float, int]) -> BidRecord:
        if self.in_flight:
            raise BidInFlightError("A bid is already being submitted")
        self._state = SubmissionState()

        try:
            value = parse_amount(amount)
        except ValidationError as exc:
            self._fail(str(exc))
            raise

        self._state = SubmissionState(SubmissionPhase.IN_FLIGHT)
        log.info("%s bidding $%.2f", user_id, value)
        try:
            record = await self._backend.place_bid(user_id, value)
        except SubmissionError as exc:
            self._fail(str(exc))
            raise
        except TransportError as exc:
            self._fail(str(exc))
            raise SubmissionError(str(exc)) from exc
        except asyncio.CancelledError:
            self._state = SubmissionState()
            raise

        self._state = SubmissionState(SubmissionPhase.SUCCEEDED)
        log.info("Bid %s accepted: %s $%.2f", record.id, record.user_id, record.amount)
        self._engine.notify(NotificationKind.BID_SUCCESS, "Bid placed successfully!")
        self._source.request_resync()
        return record

    def _fail(self, reason: str) -> None:
        log.warning("Bid rejected: %s", reason)
        self._state = SubmissionState.failed(reason)
        self._engine.notify(NotificationKind.BID_ERROR, reason)
