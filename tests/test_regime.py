"""
Tests for the regime classifier.

Classification has no hysteresis, so boundary tests check exact
threshold behavior rather than smoothing.
"""

import pytest

from microflow.engine.config import RegimeThresholds
from microflow.engine.data_types import Regime
from microflow.engine.regime import RegimeClassifier, classify_volatility, dispersion


def alternating(amplitude: float, count: int = 12):
    """Zero-mean samples whose population std equals amplitude."""
    return [amplitude if i % 2 == 0 else -amplitude for i in range(count)]


class TestDispersion:

    def test_population_statistics(self):
        mean, std = dispersion([2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0])
        assert mean == pytest.approx(5.0)
        assert std == pytest.approx(2.0)

    def test_constant_history(self):
        mean, std = dispersion([0.3] * 20)
        assert mean == pytest.approx(0.3)
        assert std == pytest.approx(0.0, abs=1e-12)

    def test_empty(self):
        assert dispersion([]) == (0.0, 0.0)


class TestThresholds:
    """Exact boundary behavior for thresholds (0.10, 0.35)."""

    thresholds = RegimeThresholds(low=0.10, high=0.35)

    def test_below_low_is_stagnant(self):
        assert classify_volatility(0.0999, self.thresholds) is Regime.STAGNANT

    def test_low_boundary_is_stable(self):
        assert classify_volatility(0.10, self.thresholds) is Regime.STABLE

    def test_just_below_high_is_stable(self):
        assert classify_volatility(0.3499, self.thresholds) is Regime.STABLE

    def test_high_boundary_is_volatile(self):
        assert classify_volatility(0.35, self.thresholds) is Regime.VOLATILE

    def test_invalid_thresholds_rejected(self):
        with pytest.raises(ValueError):
            RegimeThresholds(low=0.4, high=0.2)


class TestRegimeClassifier:

    def test_placeholder_until_enough_samples(self):
        classifier = RegimeClassifier(RegimeThresholds(0.10, 0.35), min_samples=10)

        assert classifier.classify(alternating(0.5, 10)) is Regime.CALCULATING
        assert not classifier.is_active

        assert classifier.classify(alternating(0.5, 11)) is Regime.VOLATILE
        assert classifier.is_active

    def test_middle_regime_for_quarter_volatility(self):
        classifier = RegimeClassifier(RegimeThresholds(0.10, 0.35))

        assert classifier.classify(alternating(0.25)) is Regime.STABLE
        assert classifier.volatility == pytest.approx(0.25)

    def test_stagnant_for_flat_history(self):
        classifier = RegimeClassifier()
        assert classifier.classify([0.2] * 30) is Regime.STAGNANT

    def test_reclassifies_from_scratch_each_call(self):
        classifier = RegimeClassifier(RegimeThresholds(0.10, 0.35))

        assert classifier.classify(alternating(0.25)) is Regime.STABLE
        assert classifier.classify(alternating(0.5)) is Regime.VOLATILE
        assert classifier.classify(alternating(0.25)) is Regime.STABLE
        assert classifier.classify(alternating(0.05)) is Regime.STAGNANT

    def test_short_history_after_activation_keeps_last_regime(self):
        classifier = RegimeClassifier()
        classifier.classify(alternating(0.5))

        assert classifier.classify([0.1, 0.2]) is Regime.VOLATILE
