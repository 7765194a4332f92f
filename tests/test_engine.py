"""
Tests for the MicrostructureEngine.

Drives the engine through raw feed messages and direct calls, checking the
published snapshots, subscriber handling and telemetry counters.
"""

import dataclasses
import logging

import pytest

from microflow.engine import (
    EngineConfig,
    EngineError,
    InvariantViolation,
    MicrostructureEngine,
    Regime,
    Signal,
    WindowConfig,
)

from conftest import book_message, trade_message


def bid_heavy(engine):
    return engine.apply_book_delta([(100.0, 3.0)], [(101.0, 1.0)])


def ask_heavy(engine):
    return engine.apply_book_delta([(100.0, 1.0)], [(101.0, 3.0)])


class TestInitialState:

    def test_star_count_initial_snapshot(self, engine):
        state = engine.snapshot()

        assert state.price == 0.0
        assert state.kinetic == 0.0
        assert state.pressure == 0.0
        assert state.elasticity == 0.0
        assert state.regime is Regime.CALCULATING
        assert state.score == 0
        assert state.signal is Signal.STANDBY
        assert len(state.titans) == 6

    def test_trap_break_initial_signal(self, trap_engine):
        assert trap_engine.snapshot().signal is Signal.OBSERVE

    def test_default_config(self):
        engine = MicrostructureEngine()
        assert engine.symbol == "btcusdt"
        assert engine.policy.name == "star_count"


class TestFeedHandling:

    def test_trade_message_updates_price_and_flow(self, engine):
        state = engine.handle_message(trade_message(50000.0, 2.0, is_buyer_maker=False))

        assert state is engine.snapshot()
        assert state.price == 50000.0
        assert state.kinetic == pytest.approx(2.0)
        assert engine.trade_count == 1

    def test_seller_initiated_trades_reduce_flow(self, engine):
        engine.handle_message(trade_message(100.0, 5.0, is_buyer_maker=False))
        state = engine.handle_message(trade_message(100.0, 2.0, is_buyer_maker=True))

        assert state.kinetic == pytest.approx(3.0)

    def test_trades_use_engine_clock(self, engine, clock):
        engine.handle_message(trade_message(100.0, 5.0))
        clock.advance(4.0)
        state = engine.handle_message(trade_message(100.0, 1.0))

        assert engine.trades[0].timestamp == 1000.0
        assert state.kinetic == pytest.approx(1.0)

    def test_book_message_updates_pressure(self, engine):
        state = engine.handle_message(book_message([(100.0, 3.0)], [(101.0, 1.0)]))

        assert state.pressure == pytest.approx(0.5)
        assert engine.imbalance_history == [pytest.approx(0.5)]

    def test_malformed_message_is_dropped(self, engine, caplog):
        received = []
        engine.subscribe(received.append)
        before = engine.snapshot()

        with caplog.at_level(logging.WARNING):
            result = engine.handle_message("{broken")

        assert result is None
        assert engine.snapshot() is before
        assert received == []
        assert engine.metrics.get_counter("dropped_messages") == 1
        assert "Dropping malformed feed message" in caplog.text

    def test_unknown_event_type(self, engine):
        with pytest.raises(TypeError):
            engine.ingest(object())


class TestSnapshots:

    def test_snapshot_is_frozen(self, engine):
        state = engine.record_trade(100.0, 1.0, True)

        with pytest.raises(dataclasses.FrozenInstanceError):
            state.price = 1.0
        with pytest.raises(dataclasses.FrozenInstanceError):
            state.titans[0].active = True

    def test_to_dict_is_detached(self, engine):
        state = engine.record_trade(100.0, 1.0, True)
        data = state.to_dict()
        data["titans"][0]["value"] = "tampered"
        data["price"] = -1

        assert state.titans[0].display_value != "tampered"
        assert engine.snapshot().price == 100.0

    def test_held_snapshot_does_not_change(self, engine):
        first = engine.record_trade(100.0, 1.0, True)
        engine.record_trade(105.0, 4.0, False)

        assert first.price == 100.0
        assert first.kinetic == pytest.approx(1.0)

    def test_unchanged_metrics_give_equal_snapshots(self, engine):
        first = bid_heavy(engine)
        second = bid_heavy(engine)

        assert second == first
        assert second is not first

    def test_snapshot_json(self, engine):
        engine.record_trade(100.0, 1.0, True)
        text = engine.snapshot_json()

        assert '"signal": "STANDBY"' in text
        assert '"regime": "CALCULATING"' in text


class TestSubscribers:

    def test_every_update_is_published(self, engine):
        received = []
        engine.subscribe(received.append)

        engine.record_trade(100.0, 1.0, True)
        bid_heavy(engine)

        assert len(received) == 2
        assert received[-1] is engine.snapshot()

    def test_subscribers_share_one_frozen_snapshot(self, engine):
        """Fan-out hands every subscriber the same instance; none can alter it for the others."""
        first, second = [], []
        engine.subscribe(first.append)
        engine.subscribe(second.append)

        engine.record_trade(100.0, 1.0, True)

        assert first[0] is second[0]
        with pytest.raises(dataclasses.FrozenInstanceError):
            first[0].score = 5

        view = first[0].to_dict()
        view["score"] = 5
        view["titans"].clear()
        assert second[0].score == 0
        assert len(second[0].titans) == 6

    def test_unsubscribe(self, engine):
        received = []
        engine.subscribe(received.append)
        engine.unsubscribe(received.append)

        engine.record_trade(100.0, 1.0, True)

        assert received == []

    def test_failing_subscriber_does_not_stop_others(self, engine):
        received = []

        def broken(state):
            raise RuntimeError("boom")

        engine.subscribe(broken)
        engine.subscribe(received.append)

        state = engine.record_trade(100.0, 1.0, True)

        assert received == [state]
        assert engine.metrics.get_counter("subscriber_errors") == 1

    def test_reentrant_ingest_is_rejected(self, engine):
        errors = []

        def feeds_back(state):
            try:
                engine.record_trade(1.0, 1.0, True)
            except EngineError as e:
                errors.append(e)
                raise

        engine.subscribe(feeds_back)
        engine.record_trade(100.0, 1.0, True)

        assert len(errors) == 1
        assert engine.trade_count == 1
        assert engine.metrics.get_counter("subscriber_errors") == 1

        # Engine stays usable afterwards
        engine.unsubscribe(feeds_back)
        engine.record_trade(101.0, 1.0, True)
        assert engine.trade_count == 2


class TestInvariants:

    def test_negative_quantity_is_clamped_and_counted(self, engine):
        state = engine.record_trade(100.0, -1.0, True)

        assert state.kinetic == 0.0
        assert engine.metrics.get_counter("invariant_clamps") == 1

    def test_strict_mode_raises_and_keeps_state(self, clock):
        engine = MicrostructureEngine(EngineConfig.star_count(strict=True), clock=clock)
        before = engine.snapshot()

        with pytest.raises(InvariantViolation):
            engine.record_trade(100.0, -1.0, True)
        with pytest.raises(InvariantViolation):
            engine.apply_book_delta([(100.0, -2.0)], [])

        assert engine.snapshot() is before
        engine.record_trade(100.0, 1.0, True)
        assert engine.trade_count == 1


class TestRegimeThroughEngine:

    @pytest.fixture
    def small_history_engine(self, clock):
        config = EngineConfig.star_count(windows=WindowConfig(imbalance_capacity=12, min_regime_samples=10))
        return MicrostructureEngine(config, clock=clock)

    def test_regime_activates_after_enough_samples(self, small_history_engine):
        engine = small_history_engine
        for i in range(10):
            state = bid_heavy(engine) if i % 2 == 0 else ask_heavy(engine)
        assert state.regime is Regime.CALCULATING

        state = bid_heavy(engine)
        assert state.regime is Regime.VOLATILE
        assert engine.metrics.get_counter("regime_changes") == 0

    def test_regime_changes_are_counted(self, small_history_engine):
        engine = small_history_engine
        for i in range(11):
            bid_heavy(engine) if i % 2 == 0 else ask_heavy(engine)

        for _ in range(12):
            state = bid_heavy(engine)

        assert state.regime is Regime.STAGNANT
        assert engine.volatility == pytest.approx(0.0, abs=1e-12)
        # VOLATILE -> STABLE -> STAGNANT as the ask-heavy samples roll off
        assert engine.metrics.get_counter("regime_changes") == 2


class TestThinVolumePolicies:

    def _run(self, engine):
        engine.record_trade(100.0, 1.0, True)
        engine.record_trade(101.0, 1.0, True)
        engine.record_trade(102.0, 0.001, True)
        before = engine.snapshot().elasticity
        after = engine.record_trade(103.0, 0.001, True).elasticity
        return before, after

    def test_star_count_holds(self, clock):
        engine = MicrostructureEngine(
            EngineConfig.star_count(windows=WindowConfig(micro_window_trades=2)), clock=clock
        )
        before, after = self._run(engine)

        assert before != 0.0
        assert after == before

    def test_trap_break_resets(self, clock):
        engine = MicrostructureEngine(
            EngineConfig.trap_break(windows=WindowConfig(micro_window_trades=2)), clock=clock
        )
        before, after = self._run(engine)

        assert before != 0.0
        assert after == 0.0


class TestTelemetry:

    def test_summary_counts_events(self, engine):
        engine.handle_message(trade_message(100.0, 1.0))
        engine.handle_message(book_message([(100.0, 1.0)], [(101.0, 1.0)]))
        engine.handle_message("not json")

        summary = engine.get_metrics_summary()

        assert summary["counters"]["trades"] == 1
        assert summary["counters"]["book_updates"] == 1
        assert summary["counters"]["dropped_messages"] == 1
        assert summary["latency"]["tick"]["count"] == 2

    def test_status(self, engine):
        bid_heavy(engine)
        status = engine.get_status()

        assert status["symbol"] == "btcusdt"
        assert status["policy"] == "star_count"
        assert status["imbalance_samples"] == 1
        assert status["book_two_sided"] is True
        assert status["signal"] == "STANDBY"
