from __future__ import annotations

import logging
import math
from typing import Optional, Union

from gavel.core import ValidationError
from gavel.models import FormState, Surface, ViewState

log = logging.getLogger("gavel.lifecycle")

MIN_DURATION = 10
MAX_DURATION = 3600


def validate_creation(
    starting_bid: Union[str, float, int], duration: Union[str, int]
) -> tuple[float, int]:
    """Check the creation form locally; nothing invalid reaches the server."""
    try:
        bid = float(starting_bid)
    except (TypeError, ValueError):
        bid = math.nan
    if isinstance(starting_bid, bool) or not math.isfinite(bid) or bid <= 0:
        raise ValidationError("Starting bid must be a positive number")

    try:
        raw = float(duration)
    except (TypeError, ValueError):
        raw = math.nan
    if (
        isinstance(duration, bool)
        or not math.isfinite(raw)
        or not raw.is_integer()
        or not MIN_DURATION <= raw <= MAX_DURATION
    ):
        raise ValidationError(
            f"Duration must be between {MIN_DURATION} and {MAX_DURATION} seconds"
        )
    return bid, int(raw)


class LifecycleController:
    """Decides whether the create surface or the live surface is shown."""

    def __init__(self) -> None:
        self._has_auction = False
        self._active = False
        self._requested = False
        self._form: Optional[FormState] = None

    @property
    def surface(self) -> Surface:
        if not self._has_auction or self._requested:
            return Surface.SHOW_CREATE
        return Surface.SHOW_LIVE

    @property
    def form(self) -> Optional[FormState]:
        """The pending creation request; only exists on the create surface."""
        if self.surface is not Surface.SHOW_CREATE:
            return None
        if self._form is None:
            self._form = FormState()
        return self._form

    def observe(self, view: ViewState) -> None:
        had_auction = self._has_auction
        self._has_auction = view.snapshot is not None
        self._active = view.is_active
        if had_auction and not self._has_auction:
            log.info("Auction gone; showing the create surface")

    def request_create(self) -> FormState:
        if self._active:
            raise ValidationError("The current auction is still running")
        self._requested = True
        self._form = FormState()
        return self._form

    def dismiss(self) -> None:
        if not self._has_auction:
            raise ValidationError("There is no auction to return to")
        self._requested = False
        self._form = None

    def created(self) -> None:
        self._requested = False
        self._form = None
