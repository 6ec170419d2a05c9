"""Plain-text rendering of a ViewState for the CLI."""

from __future__ import annotations

from typing import Optional

from gavel.models import AuctionSnapshot, BidRecord, NotificationKind, ViewState

_ICONS = {
    NotificationKind.EXTENDED: "⏰",
    NotificationKind.BID_SUCCESS: "✓",
    NotificationKind.BID_ERROR: "✗",
}


def format_time(seconds: int) -> str:
    mins, secs = divmod(max(seconds, 0), 60)
    return f"{mins}:{secs:02d}"


def status_label(view: ViewState) -> str:
    if not view.is_active:
        return "Auction Ended"
    return "Ending Soon!" if view.ending_soon else "Auction Active"


def winner_line(snap: AuctionSnapshot) -> str:
    if snap.current_winner:
        return f"Current Winner: {snap.current_winner}"
    return f"No bids yet - Starting bid: ${snap.starting_bid:,.2f}"


def render(view: ViewState) -> list[str]:
    lines: list[str] = []
    if view.fetch_error:
        lines.append(f"! {view.fetch_error}")
    snap = view.snapshot
    if snap is None:
        lines.append("No active auction")
        return lines

    banner = f"[{status_label(view)}] {format_time(view.displayed_time_remaining)}"
    if snap.extended_bidding and view.is_active:
        banner += "  (Extended Bidding ON)"
    lines.append(banner)
    lines.append(f"  {snap.id} | current ${snap.current_bid:,.2f} | next ${snap.next_bid:,.2f}")
    lines.append(f"  {winner_line(snap)}")
    for note in view.notifications:
        lines.append(f"  {_ICONS.get(note.kind, '*')} {note.message}")
    return lines


def render_bid(bid: BidRecord, snap: Optional[AuctionSnapshot] = None) -> str:
    line = f"{bid.timestamp:%H:%M:%S} | {bid.user_id} | ${bid.amount:,.2f} | {bid.id}"
    if snap is not None:
        line += f" -> next ${snap.next_bid:,.2f}"
    return line
