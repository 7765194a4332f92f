"""
Microstructure Engine

Wires together:
- Rolling Trade Window (net flow, elasticity)
- Order Book Mirror (pressure, imbalance history)
- Regime Classifier
- Score Policy (verdict)
- Snapshot Publisher

Data flows one way, once per delivered feed message:

    feed message -> trade/book update -> metrics -> regime -> verdict -> snapshot

The engine has a single mutation entry point per message and holds one
lock across the whole ingest-and-recompute cycle, so hosts that deliver
from more than one thread still see serialized updates. Subscribers run
inside that cycle and must not call back into ingest.
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .config import EngineConfig
from .data_types import DerivedMetrics, EngineState, Regime
from .errors import EngineError, FeedParseError
from .feed import BookDeltaEvent, FeedEvent, TradeEvent, parse_feed_message
from .metrics import MetricsCollector
from .order_book import OrderBookMirror
from .publisher import SnapshotPublisher, Subscriber
from .regime import RegimeClassifier
from .scoring import ScorePolicy, build_policy
from .trade_window import TradeWindow

logger = logging.getLogger(__name__)

PriceLevel = Tuple[float, float]


class MicrostructureEngine:
    """
    Streaming analytics engine for one symbol.

    Usage:
        engine = MicrostructureEngine(EngineConfig.star_count("btcusdt"))
        engine.subscribe(lambda state: print(state.signal.value, state.score))

        engine.handle_message(raw_ws_text)   # from the feed transport
        engine.snapshot().to_json()          # read API
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        policy: Optional[ScorePolicy] = None,
        clock: Callable[[], float] = time.time,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.config = config or EngineConfig()
        self.symbol = self.config.symbol

        windows = self.config.windows
        self._trades = TradeWindow(windows, self.config.on_thin_volume, self.config.strict)
        self._book = OrderBookMirror(windows.imbalance_capacity, self.config.strict)
        self._regime = RegimeClassifier(self.config.regime, windows.min_regime_samples)
        self._policy = policy or build_policy(self.config)

        self._clock = clock
        self._metrics = metrics or MetricsCollector()
        self._lock = threading.RLock()
        self._ingesting = False
        self._clamps_reported = 0

        self._publisher = SnapshotPublisher(self._build_snapshot())

    # === Properties ===

    @property
    def policy(self) -> ScorePolicy:
        return self._policy

    @property
    def metrics(self) -> MetricsCollector:
        return self._metrics

    @property
    def trade_count(self) -> int:
        return len(self._trades)

    @property
    def trades(self):
        """Buffered trades, oldest first."""
        return self._trades.trades

    @property
    def imbalance_history(self) -> List[float]:
        return self._book.imbalance_history

    @property
    def volatility(self) -> float:
        return self._regime.volatility

    # === Read / subscription API ===

    def snapshot(self) -> EngineState:
        """Latest published state. Immutable; safe to hold across ticks."""
        return self._publisher.latest

    def snapshot_json(self) -> str:
        return self._publisher.latest.to_json()

    def subscribe(self, callback: Subscriber) -> None:
        """Register callback for every successful recompute."""
        self._publisher.subscribe(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        self._publisher.unsubscribe(callback)

    # === Ingest ===

    def handle_message(self, raw: Union[str, bytes, Mapping[str, Any]]) -> Optional[EngineState]:
        """
        Inbound feed handler.

        Malformed messages are logged and dropped: state is left unchanged,
        nothing is published and None is returned.
        """
        try:
            event = parse_feed_message(raw)
        except FeedParseError as e:
            self._metrics.increment("dropped_messages")
            logger.warning(f"Dropping malformed feed message for {self.symbol}: {e}")
            return None
        return self.ingest(event)

    def ingest(self, event: FeedEvent) -> EngineState:
        """Apply a parsed event, stamping trades with the engine clock."""
        if isinstance(event, TradeEvent):
            return self.record_trade(event.price, event.quantity, event.buyer_initiated)
        if isinstance(event, BookDeltaEvent):
            return self.apply_book_delta(event.bids, event.asks)
        raise TypeError(f"unsupported feed event: {type(event).__name__}")

    def record_trade(
        self,
        price: float,
        quantity: float,
        buyer_initiated: bool,
        timestamp: Optional[float] = None,
    ) -> EngineState:
        """Record one trade and publish the recomputed state."""
        def apply() -> None:
            ts = self._clock() if timestamp is None else timestamp
            self._trades.record_trade(price, quantity, buyer_initiated, ts)
            self._metrics.increment("trades")

        return self._cycle(apply)

    def apply_book_delta(
        self,
        bid_updates: Iterable[PriceLevel],
        ask_updates: Iterable[PriceLevel],
    ) -> EngineState:
        """Apply one book update and publish the recomputed state."""
        def apply() -> None:
            self._book.apply_book_delta(bid_updates, ask_updates)
            self._metrics.increment("book_updates")

        return self._cycle(apply)

    def _cycle(self, apply: Callable[[], None]) -> EngineState:
        with self._lock:
            if self._ingesting:
                raise EngineError("re-entrant ingest: subscribers must not feed the engine")
            self._ingesting = True
            try:
                with self._metrics.time("tick"):
                    apply()
                    snapshot = self._recompute()
                self._publish(snapshot)
                return snapshot
            finally:
                self._ingesting = False

    # === Recompute ===

    def _recompute(self) -> EngineState:
        previous = self._regime.regime
        regime = self._regime.classify(self._book.imbalance_history)
        if regime is not previous and previous is not Regime.CALCULATING:
            self._metrics.increment("regime_changes")

        clamps = self._trades.invariant_clamps + self._book.invariant_clamps
        if clamps > self._clamps_reported:
            self._metrics.increment("invariant_clamps", clamps - self._clamps_reported)
            self._clamps_reported = clamps

        return self._build_snapshot()

    def _build_snapshot(self) -> EngineState:
        metrics = DerivedMetrics(
            kinetic=self._trades.kinetic,
            pressure=self._book.pressure,
            elasticity=self._trades.elasticity,
            regime=self._regime.regime,
            volatility=self._regime.volatility,
        )
        verdict = self._policy.evaluate(metrics)
        return EngineState(
            price=self._trades.price,
            kinetic=metrics.kinetic,
            pressure=metrics.pressure,
            elasticity=metrics.elasticity,
            regime=metrics.regime,
            score=verdict.score,
            signal=verdict.signal,
            titans=verdict.titans,
        )

    def _publish(self, snapshot: EngineState) -> None:
        errors_before = self._publisher.error_count
        self._publisher.publish(snapshot)
        failed = self._publisher.error_count - errors_before
        if failed:
            self._metrics.increment("subscriber_errors", failed)

    # === Utility ===

    def get_metrics_summary(self) -> Dict[str, Any]:
        return self._metrics.get_summary()

    def get_status(self) -> Dict[str, Any]:
        """Current engine status for monitoring."""
        state = self.snapshot()
        return {
            "symbol": self.symbol,
            "policy": self._policy.name,
            "trade_count": len(self._trades),
            "imbalance_samples": len(self._book.imbalance_history),
            "book_two_sided": self._book.is_two_sided,
            "regime": state.regime.value,
            "signal": state.signal.value,
            "score": state.score,
            "subscribers": self._publisher.subscriber_count,
        }
