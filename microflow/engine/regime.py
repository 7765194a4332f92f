"""
Regime Classifier

Classifies volatility regime from the dispersion (population standard
deviation) of recent imbalance samples. There is no hysteresis: every
call classifies from scratch, so a history sitting near a threshold may
flip between regimes from one tick to the next.
"""

import logging
import math
from typing import Optional, Sequence, Tuple

from .config import RegimeThresholds
from .data_types import Regime

logger = logging.getLogger(__name__)


def dispersion(samples: Sequence[float]) -> Tuple[float, float]:
    """Population mean and standard deviation of samples."""
    n = len(samples)
    if n == 0:
        return 0.0, 0.0
    mean = sum(samples) / n
    variance = sum((s - mean) ** 2 for s in samples) / n
    return mean, math.sqrt(variance)


def classify_volatility(volatility: float, thresholds: RegimeThresholds) -> Regime:
    """Map a volatility to STAGNANT (< low), STABLE (< high) or VOLATILE."""
    if volatility < thresholds.low:
        return Regime.STAGNANT
    if volatility < thresholds.high:
        return Regime.STABLE
    return Regime.VOLATILE


class RegimeClassifier:
    """
    Holds the current regime and the volatility behind it.

    The regime stays CALCULATING until the history holds more than
    min_samples entries.
    """

    def __init__(self, thresholds: Optional[RegimeThresholds] = None, min_samples: int = 10):
        self.thresholds = thresholds or RegimeThresholds()
        self.min_samples = min_samples
        self.regime = Regime.CALCULATING
        self.volatility = 0.0

    @property
    def is_active(self) -> bool:
        return self.regime is not Regime.CALCULATING

    def classify(self, history: Sequence[float]) -> Regime:
        """Reclassify from the full retained history."""
        if len(history) <= self.min_samples:
            return self.regime

        _, volatility = dispersion(history)
        regime = classify_volatility(volatility, self.thresholds)
        if regime is not self.regime:
            logger.info(f"Regime change: {self.regime.value} -> {regime.value} (volatility {volatility:.3f})")

        self.volatility = volatility
        self.regime = regime
        return regime
