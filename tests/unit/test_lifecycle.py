"""Unit tests for create/live surface gating and creation-form validation."""

from __future__ import annotations

import pytest

from gavel.core import ValidationError
from gavel.lifecycle import LifecycleController, validate_creation
from gavel.models import AuctionStatus, Surface, ViewState


class TestValidateCreation:
    def test_valid_input(self):
        assert validate_creation("100", "30") == (100.0, 30)
        assert validate_creation(0.5, 10) == (0.5, 10)
        assert validate_creation(1, "3600") == (1.0, 3600)

    @pytest.mark.parametrize("starting_bid", ["0", "-5", "abc", "nan", "inf", ""])
    def test_bad_starting_bid(self, starting_bid):
        with pytest.raises(ValidationError, match="Starting bid must be a positive number"):
            validate_creation(starting_bid, "30")

    @pytest.mark.parametrize("duration", ["9", "3601", "30.5", "x", ""])
    def test_bad_duration(self, duration):
        with pytest.raises(ValidationError, match="between 10 and 3600"):
            validate_creation("100", duration)


class TestLifecycleController:
    def test_starts_on_create_surface_with_defaults(self):
        controller = LifecycleController()

        assert controller.surface is Surface.SHOW_CREATE
        form = controller.form
        assert (form.starting_bid, form.duration, form.extended_bidding) == ("100", "30", True)

    def test_auction_shows_live_surface(self, snapshot):
        controller = LifecycleController()
        controller.observe(ViewState(snapshot=snapshot()))

        assert controller.surface is Surface.SHOW_LIVE
        assert controller.form is None

    def test_cannot_request_create_while_active(self, snapshot):
        controller = LifecycleController()
        controller.observe(ViewState(snapshot=snapshot()))

        with pytest.raises(ValidationError):
            controller.request_create()
        assert controller.surface is Surface.SHOW_LIVE

    def test_request_and_dismiss_after_end(self, snapshot):
        controller = LifecycleController()
        controller.observe(
            ViewState(snapshot=snapshot(status=AuctionStatus.ENDED, time_remaining=0))
        )

        form = controller.request_create()
        form.starting_bid = "250"
        assert controller.surface is Surface.SHOW_CREATE

        controller.dismiss()
        assert controller.surface is Surface.SHOW_LIVE
        assert controller.request_create().starting_bid == "100"

    def test_created_discards_form(self, snapshot):
        controller = LifecycleController()
        controller.form.starting_bid = "5"
        controller.observe(ViewState(snapshot=snapshot()))
        controller.created()

        assert controller.surface is Surface.SHOW_LIVE
        assert controller.form is None

    def test_losing_the_snapshot_returns_to_create(self, snapshot):
        controller = LifecycleController()
        controller.observe(ViewState(snapshot=snapshot()))
        controller.observe(ViewState())

        assert controller.surface is Surface.SHOW_CREATE

    def test_dismiss_needs_an_auction(self):
        with pytest.raises(ValidationError):
            LifecycleController().dismiss()
