from __future__ import annotations

from gavel.console import format_time, render, status_label
from gavel.models import AuctionStatus, NotificationKind, TransientNotification, ViewState


def test_format_time():
    assert format_time(75) == "1:15"
    assert format_time(5) == "0:05"
    assert format_time(0) == "0:00"


def test_status_labels(snapshot):
    assert status_label(ViewState(snapshot=snapshot(), displayed_time_remaining=30)) == "Auction Active"
    assert status_label(ViewState(snapshot=snapshot(), displayed_time_remaining=10)) == "Ending Soon!"
    ended = snapshot(status=AuctionStatus.ENDED, time_remaining=0)
    assert status_label(ViewState(snapshot=ended)) == "Auction Ended"


def test_render_without_auction():
    assert render(ViewState(fetch_error="Could not load auction")) == [
        "! Could not load auction",
        "No active auction",
    ]


def test_render_live_auction(snapshot):
    view = ViewState(
        snapshot=snapshot(current_bid=150, next_bid=151, current_winner="User7"),
        displayed_time_remaining=42,
        notifications=(
            TransientNotification(NotificationKind.EXTENDED, "Auction extended: 8s -> 18s", 0),
        ),
    )

    lines = render(view)

    assert lines[0] == "[Auction Active] 0:42  (Extended Bidding ON)"
    assert "next $151.00" in lines[1]
    assert lines[2] == "  Current Winner: User7"
    assert lines[3].endswith("Auction extended: 8s -> 18s")


def test_render_without_bids(snapshot):
    lines = render(ViewState(snapshot=snapshot(extended_bidding=False), displayed_time_remaining=30))

    assert lines[0] == "[Auction Active] 0:30"
    assert lines[2] == "  No bids yet - Starting bid: $100.00"
