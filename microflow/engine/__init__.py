"""
Streaming Microstructure Engine

Pipeline, one pass per feed message:
```
FEED TRANSPORT (websocket)
├─ aggTrade (trade prints)
└─ depth20@100ms (book deltas)
        ↓
ROLLING WINDOWS
├─ trade buffer (1000)  -> kinetic (3s net flow), elasticity (micro-burst)
└─ order book mirror    -> pressure (top-of-book imbalance)
        ↓
REGIME CLASSIFIER (imbalance dispersion, 120 samples)
├─ STAGNANT
├─ STABLE
└─ VOLATILE
        ↓
SCORE POLICY (star count | trap/break)
        ↓
SNAPSHOT PUBLISHER -> subscribers, read API, tool bridge
```

Usage:
    from microflow.engine import EngineConfig, FeedTransport, MicrostructureEngine

    async def main():
        engine = MicrostructureEngine(EngineConfig.star_count("btcusdt"))
        engine.subscribe(lambda state: print(state.signal.value, state.score))

        async with FeedTransport(engine):
            await asyncio.sleep(3600)

    asyncio.run(main())
"""

from .config import (
    EngineConfig,
    FactorThresholds,
    RegimeThresholds,
    ThinVolumePolicy,
    TrapBreakThresholds,
    WindowConfig,
)
from .core import MicrostructureEngine
from .data_types import DerivedMetrics, EngineState, Regime, Signal, Titan, Trade, Verdict
from .errors import EngineError, FeedParseError, InvariantViolation
from .feed import BookDeltaEvent, TradeEvent, parse_feed_message
from .ingestion import FeedConfig, FeedTransport, StreamState, StreamStats
from .metrics import LatencyStats, LatencyTracker, MetricsCollector
from .order_book import OrderBookMirror
from .publisher import SnapshotPublisher
from .regime import RegimeClassifier, classify_volatility, dispersion
from .ring_buffer import RingBuffer
from .scoring import ScorePolicy, StarCountPolicy, TrapBreakPolicy, build_policy
from .tool_bridge import MetricsToolBridge
from .trade_window import TradeWindow

__all__ = [
    # Storage
    "RingBuffer",
    # Data types
    "Trade",
    "Regime",
    "Signal",
    "Titan",
    "DerivedMetrics",
    "Verdict",
    "EngineState",
    # Configuration
    "EngineConfig",
    "WindowConfig",
    "RegimeThresholds",
    "FactorThresholds",
    "TrapBreakThresholds",
    "ThinVolumePolicy",
    # Errors
    "EngineError",
    "FeedParseError",
    "InvariantViolation",
    # Feed messages
    "TradeEvent",
    "BookDeltaEvent",
    "parse_feed_message",
    # Components
    "TradeWindow",
    "OrderBookMirror",
    "RegimeClassifier",
    "dispersion",
    "classify_volatility",
    "ScorePolicy",
    "StarCountPolicy",
    "TrapBreakPolicy",
    "build_policy",
    "SnapshotPublisher",
    # Engine
    "MicrostructureEngine",
    # Transport
    "FeedTransport",
    "FeedConfig",
    "StreamState",
    "StreamStats",
    # Tool bridge
    "MetricsToolBridge",
    # Metrics
    "MetricsCollector",
    "LatencyTracker",
    "LatencyStats",
]
