import json
import os
import sys

import pytest

TESTS_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(TESTS_DIR, ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from microflow.engine import EngineConfig, MicrostructureEngine  # noqa: E402


class FakeClock:
    """Manually advanced clock in seconds."""

    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def trade_message(price, quantity, is_buyer_maker=False, symbol="btcusdt"):
    """Combined-stream aggTrade frame as the exchange sends it."""
    return json.dumps({
        "stream": f"{symbol}@aggTrade",
        "data": {"e": "aggTrade", "s": symbol.upper(), "p": str(price), "q": str(quantity), "m": is_buyer_maker},
    })


def book_message(bids, asks, symbol="btcusdt"):
    """Combined-stream depth frame with [price, qty] decimal strings."""
    return json.dumps({
        "stream": f"{symbol}@depth20@100ms",
        "data": {
            "e": "depthUpdate",
            "b": [[str(p), str(q)] for p, q in bids],
            "a": [[str(p), str(q)] for p, q in asks],
        },
    })


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine(clock):
    """Star-count engine on a fake clock."""
    return MicrostructureEngine(EngineConfig.star_count(), clock=clock)


@pytest.fixture
def trap_engine(clock):
    """Trap/break engine on a fake clock."""
    return MicrostructureEngine(EngineConfig.trap_break(), clock=clock)
