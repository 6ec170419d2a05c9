"""
Value types shared by every part of the live view.

Wire types (what the server sends) are pydantic models with camelCase
aliases; view-side types are frozen dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, NonNegativeInt
from pydantic.alias_generators import to_camel


# --------------------------------------------------------------------------- #
#  Wire models
# --------------------------------------------------------------------------- #
class _Wire(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )


class AuctionStatus(str, Enum):
    ACTIVE = "ACTIVE"
    ENDED = "ENDED"


class EventType(str, Enum):
    BID_PLACED = "BID_PLACED"
    AUCTION_ENDED = "AUCTION_ENDED"
    AUCTION_CREATED = "AUCTION_CREATED"

    @classmethod
    def _missing_(cls, value):
        # the server broadcasts creation as AUCTION_STARTED
        if value == "AUCTION_STARTED":
            return cls.AUCTION_CREATED
        return None


class AuctionSnapshot(_Wire):
    id: str
    starting_bid: float
    current_bid: float
    current_winner: Optional[str] = None
    duration: int
    extended_bidding: bool
    status: AuctionStatus
    next_bid: float
    time_remaining: NonNegativeInt

    @property
    def is_active(self) -> bool:
        return self.status is AuctionStatus.ACTIVE


class PartialSnapshot(_Wire):
    """The subset of auction fields carried by push events."""

    id: str
    current_bid: float
    current_winner: Optional[str] = None
    status: AuctionStatus
    next_bid: float
    time_remaining: NonNegativeInt

    def merge_into(self, base: Optional[AuctionSnapshot]) -> AuctionSnapshot:
        """
        Complete this partial using `base` when it describes the same auction.
        Unknown auctions get placeholders until the next pull replaces them.
        """
        if base is not None and base.id == self.id:
            return base.model_copy(update=self.model_dump())
        return AuctionSnapshot(
            **self.model_dump(),
            starting_bid=self.current_bid,
            duration=self.time_remaining,
            extended_bidding=False,
        )


class BidRecord(_Wire):
    id: str
    user_id: str
    amount: float
    timestamp: datetime


class AuctionEvent(_Wire):
    type: Optional[EventType] = None
    auction: Optional[PartialSnapshot] = None
    bid: Optional[BidRecord] = None
    error: Optional[str] = None


# --------------------------------------------------------------------------- #
#  View-side state
# --------------------------------------------------------------------------- #
class NotificationKind(str, Enum):
    EXTENDED = "extended"
    BID_SUCCESS = "bidSuccess"
    BID_ERROR = "bidError"


@dataclass(frozen=True)
class TransientNotification:
    kind: NotificationKind
    message: str
    expires_at: float  # monotonic seconds

    def expired(self, now: float) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True)
class ViewState:
    snapshot: Optional[AuctionSnapshot] = None
    displayed_time_remaining: int = 0
    notifications: tuple[TransientNotification, ...] = ()
    fetch_error: Optional[str] = None
    ending_soon_seconds: int = 10
    revision: int = 0  # bumped on every remote update

    @property
    def is_active(self) -> bool:
        return self.snapshot is not None and self.snapshot.is_active

    @property
    def ending_soon(self) -> bool:
        return self.is_active and self.displayed_time_remaining <= self.ending_soon_seconds

    def notification(self, kind: NotificationKind) -> Optional[TransientNotification]:
        return next((n for n in self.notifications if n.kind is kind), None)


class SubmissionPhase(str, Enum):
    IDLE = "idle"
    IN_FLIGHT = "in_flight"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class SubmissionState:
    phase: SubmissionPhase = SubmissionPhase.IDLE
    reason: Optional[str] = None

    @classmethod
    def failed(cls, reason: str) -> "SubmissionState":
        return cls(SubmissionPhase.FAILED, reason)


class Surface(str, Enum):
    SHOW_CREATE = "show_create"
    SHOW_LIVE = "show_live"


@dataclass
class FormState:
    starting_bid: str = "100"
    duration: str = "30"
    extended_bidding: bool = True
    error: Optional[str] = None
    submitting: bool = False
