"""
Feed message contract.

The transport delivers one combined-stream envelope per message:

    {"stream": "btcusdt@aggTrade",        "data": {"p": "...", "q": "...", "m": true, ...}}
    {"stream": "btcusdt@depth20@100ms",   "data": {"b": [["p", "q"], ...], "a": [...]}}

Prices and quantities arrive as decimal strings. A book quantity of "0"
removes the level. Partial-depth payloads using "bids"/"asks" instead of
"b"/"a" are accepted too.

parse_feed_message() fully validates a message before anything touches
engine state, raising FeedParseError on any defect.
"""

import json
import math
from dataclasses import dataclass
from typing import Any, List, Mapping, Tuple, Union

from .errors import FeedParseError

TRADE_STREAM_MARKER = "aggTrade"
DEPTH_STREAM_MARKER = "depth"

PriceLevel = Tuple[float, float]


@dataclass(frozen=True, slots=True)
class TradeEvent:
    """
    Parsed trade print.

    From the aggTrade stream:
    - is_buyer_maker=True  -> seller aggressed (hit bid)
    - is_buyer_maker=False -> buyer aggressed (lifted ask)
    """

    price: float
    quantity: float
    is_buyer_maker: bool

    @property
    def buyer_initiated(self) -> bool:
        return not self.is_buyer_maker


@dataclass(frozen=True, slots=True)
class BookDeltaEvent:
    """Parsed book update: (price, quantity) pairs for each side."""

    bids: Tuple[PriceLevel, ...]
    asks: Tuple[PriceLevel, ...]


FeedEvent = Union[TradeEvent, BookDeltaEvent]


def _decimal(value: Any, field_name: str) -> float:
    if isinstance(value, bool):
        raise FeedParseError(f"{field_name} is not a decimal: {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise FeedParseError(f"{field_name} is not a decimal: {value!r}") from e
    if not math.isfinite(number):
        raise FeedParseError(f"{field_name} is not finite: {value!r}")
    return number


def _levels(raw_levels: Any, side: str) -> Tuple[PriceLevel, ...]:
    if not isinstance(raw_levels, list):
        raise FeedParseError(f"{side} levels must be a list, got {type(raw_levels).__name__}")
    levels: List[PriceLevel] = []
    for entry in raw_levels:
        if not isinstance(entry, (list, tuple)) or len(entry) < 2:
            raise FeedParseError(f"malformed {side} level: {entry!r}")
        levels.append((_decimal(entry[0], f"{side} price"), _decimal(entry[1], f"{side} quantity")))
    return tuple(levels)


def parse_trade(data: Mapping[str, Any]) -> TradeEvent:
    """Parse an aggTrade payload."""
    try:
        raw_price, raw_qty, maker = data["p"], data["q"], data["m"]
    except KeyError as e:
        raise FeedParseError(f"trade payload missing field {e}", data) from e
    if not isinstance(maker, bool):
        raise FeedParseError(f"trade maker flag must be boolean, got {maker!r}", data)
    return TradeEvent(
        price=_decimal(raw_price, "trade price"),
        quantity=_decimal(raw_qty, "trade quantity"),
        is_buyer_maker=maker,
    )


def parse_book(data: Mapping[str, Any]) -> BookDeltaEvent:
    """Parse a depth payload ("b"/"a" or "bids"/"asks")."""
    bids = data.get("b", data.get("bids"))
    asks = data.get("a", data.get("asks"))
    if bids is None or asks is None:
        raise FeedParseError("book payload missing bid or ask levels", data)
    return BookDeltaEvent(bids=_levels(bids, "bid"), asks=_levels(asks, "ask"))


def parse_feed_message(raw: Union[str, bytes, Mapping[str, Any]]) -> FeedEvent:
    """
    Parse one combined-stream message into a typed event.

    Args:
        raw: JSON text/bytes or an already decoded envelope

    Raises:
        FeedParseError: for invalid JSON, an unknown stream or bad fields
    """
    if isinstance(raw, (str, bytes, bytearray)):
        try:
            payload = json.loads(raw)
        except (ValueError, UnicodeDecodeError) as e:
            raise FeedParseError(f"invalid JSON: {e}", raw) from e
    else:
        payload = raw

    if not isinstance(payload, Mapping):
        raise FeedParseError("message envelope must be an object", payload)

    stream = payload.get("stream")
    data = payload.get("data")
    if not isinstance(stream, str) or not isinstance(data, Mapping):
        raise FeedParseError("message envelope needs 'stream' and 'data'", payload)

    if TRADE_STREAM_MARKER in stream:
        return parse_trade(data)
    if DEPTH_STREAM_MARKER in stream:
        return parse_book(data)
    raise FeedParseError(f"unknown stream {stream!r}", payload)
