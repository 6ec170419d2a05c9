import asyncio
import logging
from logging.handlers import RotatingFileHandler
from typing import Annotated, Optional
import os
import typer
from gavel.console import render, render_bid
from gavel.core import GavelError
from gavel.models import ViewState
from gavel.remote.graphql import GraphQLAuction
from gavel.session import AuctionSession
from gavel.settings import Settings, load_settings

if os.getenv("DEBUG_CLI", "0") == "1":
    import debugpy

    debugpy.listen(("0.0.0.0", 5679))
    if os.getenv("DEBUGPY_WAIT", "0") == "1":
        debugpy.wait_for_client()


# ---------------------------------------------------------------------------
# Global logging configuration - set once at import time
# ---------------------------------------------------------------------------
LOG_LEVEL = logging.DEBUG if os.getenv("GAVEL_DEBUG", "0") == "1" else logging.INFO
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s -- %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
file_handler = RotatingFileHandler(
    "./gavel.log", maxBytes=10 * 1024 * 1024, backupCount=5, encoding="utf-8"
)
file_handler.setLevel(LOG_LEVEL)
file_handler.setFormatter(
    logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s -- %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
)

root = logging.getLogger()  # root logger
root.addHandler(file_handler)


app = typer.Typer(help="gavel CLI")


def _session(settings: Settings) -> AuctionSession:
    return AuctionSession(GraphQLAuction.from_settings(settings), settings)


def _echo(view: ViewState) -> None:
    typer.echo("\n".join(render(view)))


async def _watch(settings: Settings) -> None:
    session = _session(settings)
    last: list[str] = []

    def show(view: ViewState) -> None:
        nonlocal last
        lines = render(view)
        if lines != last:
            typer.echo("\n".join(lines))
            last = lines

    session.subscribe(show)
    async with session:
        typer.echo(f"gavel watching as {session.user_id} – Ctrl+C to quit")
        await asyncio.Event().wait()


async def _status(settings: Settings) -> None:
    session = _session(settings)
    try:
        _echo(await session.source.pull())
    finally:
        await session.close()


async def _create(settings: Settings, starting_bid: str, duration: str, extended: bool):
    session = _session(settings)
    try:
        await session.create_auction(starting_bid, duration, extended)
        _echo(session.view)
    finally:
        await session.close()


async def _bid(settings: Settings, amount: str) -> None:
    session = _session(settings)
    try:
        await session.source.pull()
        record = await session.place_bid(amount)
        view = await session.source.resync()
        typer.echo(render_bid(record, view.snapshot))
        _echo(view)
    finally:
        await session.close()


def _run(coro) -> None:
    try:
        asyncio.run(coro)
    except GavelError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(1)


@app.command()
def watch():
    """Follow the live auction."""
    try:
        _run(_watch(load_settings()))
    except KeyboardInterrupt:
        pass


@app.command()
def status():
    """Show the current auction once."""
    _run(_status(load_settings()))


@app.command()
def create(
    starting_bid: Annotated[
        str, typer.Option("--starting-bid", "-b", help="Opening price.")
    ] = "100",
    duration: Annotated[
        str, typer.Option("--duration", "-d", help="Seconds, 10-3600.")
    ] = "30",
    extended: Annotated[
        bool,
        typer.Option(
            "--extended/--no-extended",
            help="Extend the auction when bids land in the final seconds.",
        ),
    ] = True,
):
    """Start a new auction."""
    _run(_create(load_settings(), starting_bid, duration, extended))


@app.command()
def bid(
    amount: Annotated[str, typer.Argument(help="Bid amount.")],
    user: Annotated[
        Optional[str], typer.Option("--user", "-u", help="Bidder label.")
    ] = None,
):
    """Place one bid on the current auction."""
    settings = load_settings()
    if user:
        settings.user_id = user
    _run(_bid(settings, amount))


if __name__ == "__main__":
    app()
