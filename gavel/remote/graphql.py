"""
GraphQL auction backend.

Queries and mutations are POSTed over HTTP; the `auctionEvents` subscription
runs over a websocket speaking the graphql-transport-ws protocol:

  client → connection_init        server → connection_ack
  client → subscribe {id, query}  server → next* / error / complete
  server → ping                   client → pong
"""

from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator, Optional, Type, TypeVar

import httpx
import pydantic
import websockets
from websockets.exceptions import WebSocketException

from gavel.core import (
    AuctionBackend,
    SnapshotFetchError,
    SubmissionError,
    TransportError,
)
from gavel.models import AuctionEvent, AuctionSnapshot, BidRecord
from gavel.remote import operations as ops
from gavel.settings import Settings

log = logging.getLogger("gavel.remote")

SUBPROTOCOL = "graphql-transport-ws"
_SUBSCRIPTION_ID = "1"

M = TypeVar("M", bound=pydantic.BaseModel)


# --------------------------------------------------------------------------- #
#  Wire helpers
# --------------------------------------------------------------------------- #
def decode_message(raw: str | bytes) -> dict[str, Any]:
    try:
        message = json.loads(raw)
    except ValueError as exc:
        raise TransportError(f"malformed subscription frame: {raw!r:.80}") from exc
    if not isinstance(message, dict):
        raise TransportError(f"unexpected subscription frame: {message!r:.80}")
    return message


def parse_next(payload: Any) -> AuctionEvent:
    """Turn the payload of a `next` frame into an AuctionEvent."""
    if not isinstance(payload, dict):
        raise TransportError(f"unexpected next payload: {payload!r:.80}")
    if payload.get("errors"):
        raise TransportError(_join_errors(payload["errors"]))
    data = payload.get("data")
    if not isinstance(data, dict) or data.get("auctionEvents") is None:
        raise TransportError("subscription frame without auctionEvents")
    return _model(AuctionEvent, data["auctionEvents"])


def _join_errors(errors: Any) -> str:
    """Flatten a GraphQL error payload (list, single object or bare string)."""
    if errors is None:
        return ""
    if isinstance(errors, (str, dict)):
        errors = [errors]
    elif not isinstance(errors, list):
        return str(errors)
    return "; ".join(
        str(e.get("message", "unknown error")) if isinstance(e, dict) else str(e)
        for e in errors
    )


def _model(cls: Type[M], raw: Any) -> M:
    try:
        return cls.model_validate(raw)
    except pydantic.ValidationError as exc:
        raise TransportError(f"malformed {cls.__name__}: {exc}") from exc


# --------------------------------------------------------------------------- #
#  Backend
# --------------------------------------------------------------------------- #
class GraphQLAuction(AuctionBackend):
    """Talks to the auction server's `/query` endpoint."""

    def __init__(
        self,
        http_url: str,
        ws_url: str,
        *,
        timeout: float = 10,
        headers: Optional[dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._http_url = http_url
        self._ws_url = ws_url
        self._timeout = timeout
        self._headers = headers
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> GraphQLAuction:
        return cls(
            settings.server.http_url,
            settings.server.ws_url,
            timeout=settings.server.timeout_seconds,
            headers=settings.headers(),
        )

    async def fetch_current(self) -> Optional[AuctionSnapshot]:
        try:
            data = await self._execute(ops.GET_CURRENT_AUCTION)
            raw = data.get("currentAuction")
            return _model(AuctionSnapshot, raw) if raw else None
        except (SubmissionError, TransportError) as exc:
            raise SnapshotFetchError(str(exc)) from exc

    async def create_auction(
        self, starting_bid: float, duration: int, extended_bidding: bool
    ) -> AuctionSnapshot:
        data = await self._execute(
            ops.CREATE_AUCTION,
            {
                "startingBid": starting_bid,
                "duration": duration,
                "extendedBidding": extended_bidding,
            },
        )
        return _model(AuctionSnapshot, data.get("createAuction"))

    async def place_bid(self, user_id: str, amount: float) -> BidRecord:
        data = await self._execute(ops.PLACE_BID, {"userId": user_id, "amount": amount})
        return _model(BidRecord, data.get("placeBid"))

    # ---------------- HTTP ---------------- #

    async def _execute(
        self, query: str, variables: Optional[dict[str, Any]] = None
    ) -> dict[str, Any]:
        payload = {"query": query, "variables": variables or {}}
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                headers=self._headers,
                transport=self._transport,
            ) as client:
                r = await client.post(self._http_url, json=payload)
                try:
                    body = r.json()
                except ValueError:
                    body = None
                if isinstance(body, dict) and body.get("errors"):
                    raise SubmissionError(_join_errors(body["errors"]))
                r.raise_for_status()
        except httpx.HTTPError as exc:
            raise TransportError(f"{self._http_url}: {exc}") from exc
        if not isinstance(body, dict):
            raise TransportError(f"{self._http_url}: response is not a JSON object")
        return body.get("data") or {}

    # ------------- WEBSOCKET -------------- #

    async def events(self) -> AsyncIterator[AuctionEvent]:
        try:
            async with websockets.connect(
                self._ws_url,
                subprotocols=[SUBPROTOCOL],
                open_timeout=self._timeout,
            ) as ws:
                await ws.send(json.dumps({"type": "connection_init", "payload": {}}))
                ack = decode_message(await ws.recv())
                if ack.get("type") != "connection_ack":
                    raise TransportError(
                        f"expected connection_ack, got {ack.get('type')!r}"
                    )
                await ws.send(
                    json.dumps(
                        {
                            "id": _SUBSCRIPTION_ID,
                            "type": "subscribe",
                            "payload": {"query": ops.AUCTION_EVENTS},
                        }
                    )
                )
                log.info("Subscribed to auctionEvents at %s", self._ws_url)

                async for raw in ws:
                    message = decode_message(raw)
                    kind = message.get("type")
                    if kind == "next":
                        yield parse_next(message.get("payload") or {})
                    elif kind == "ping":
                        await ws.send(json.dumps({"type": "pong"}))
                    elif kind == "error":
                        raise TransportError(
                            _join_errors(message.get("payload")) or "subscription error"
                        )
                    elif kind == "complete":
                        log.info("Server completed the auctionEvents subscription")
                        return
                    else:
                        log.debug("Ignoring %r frame", kind)
        except (WebSocketException, OSError) as exc:
            raise TransportError(f"{self._ws_url}: {exc}") from exc
