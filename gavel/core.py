from abc import ABC, abstractmethod
from typing import AsyncIterator, Optional

from gavel.models import AuctionEvent, AuctionSnapshot, BidRecord


class GavelError(Exception):
    """Base for every error raised by gavel."""


class ValidationError(GavelError, ValueError):
    """Raised locally, before anything is sent to the server."""


class SubmissionError(GavelError):
    """Raised when the server rejects a mutation (bid too low, auction over...)."""


class BidInFlightError(SubmissionError):
    """Raised when a bid is attempted while another one is still in flight."""


class TransportError(GavelError):
    """Raised when the server cannot be reached or answers with garbage."""


class SnapshotFetchError(TransportError):
    """Raised when pulling the current auction fails."""


class AuctionBackend(ABC):
    """The remote auction authority, seen from the client."""

    @abstractmethod
    async def fetch_current(self) -> Optional[AuctionSnapshot]: ...

    @abstractmethod
    async def create_auction(
        self, starting_bid: float, duration: int, extended_bidding: bool
    ) -> AuctionSnapshot: ...

    @abstractmethod
    async def place_bid(self, user_id: str, amount: float) -> BidRecord: ...

    @abstractmethod
    def events(self) -> AsyncIterator[AuctionEvent]:
        """Subscribe to the push channel; iteration ends when the server completes it."""

    async def aclose(self) -> None: ...
