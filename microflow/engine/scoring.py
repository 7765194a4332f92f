"""
Verdict Aggregator - scoring policies.

A ScorePolicy turns DerivedMetrics into a Verdict: an integer score, a
Signal and the ordered display rows ("titans"). Two policies exist:

StarCountPolicy
    Five independent factors, one point each:
      |kinetic| > 50, |pressure| > 0.3, |elasticity| > 2.0,
      regime == VOLATILE, kinetic and pressure share a sign (alignment).
    score >= 4 -> EXECUTE LONG/SHORT by the sign of kinetic
    score == 3 -> PREPARE
    otherwise  -> STANDBY

TrapBreakPolicy
    Score counts the first four factors only. The signal comes from
    ordered guards on raw kinetic/elasticity, first match wins:
      kinetic >  50 and elasticity <  0.5 -> SHORT (TRAP)
      kinetic >  50 and elasticity >  2.0 -> LONG (BREAK)
      kinetic < -50 and elasticity > -0.5 -> LONG (TRAP)
      kinetic < -50 and elasticity < -2.0 -> SHORT (BREAK)
      otherwise                           -> OBSERVE

Every factor is a plain numeric comparison, so evaluate() is total over
all metric values.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from .config import (
    STAR_COUNT,
    TRAP_BREAK,
    EngineConfig,
    FactorThresholds,
    TrapBreakThresholds,
)
from .data_types import DerivedMetrics, Regime, Signal, Titan, Verdict

PLACEHOLDER_VALUE = "---"

KINETIC_ROW = "CTD (Kinetic)"
PRESSURE_ROW = "OBI (Pressure)"
ELASTICITY_ROW = "LQ (Elasticity)"
REGIME_ROW = "VOL (Regime)"
BASIS_ROW = "BASIS"
ALIGNMENT_ROW = "WA (Alignment)"


@dataclass(frozen=True)
class FactorSet:
    """The four factors shared by both policies."""

    kinetic: bool
    pressure: bool
    elasticity: bool
    regime: bool

    @classmethod
    def evaluate(cls, metrics: DerivedMetrics, thresholds: FactorThresholds) -> "FactorSet":
        return cls(
            kinetic=abs(metrics.kinetic) > thresholds.kinetic,
            pressure=abs(metrics.pressure) > thresholds.pressure,
            elasticity=abs(metrics.elasticity) > thresholds.elasticity,
            regime=metrics.regime is Regime.VOLATILE,
        )

    @property
    def count(self) -> int:
        return sum((self.kinetic, self.pressure, self.elasticity, self.regime))


def placeholder_row(name: str) -> Titan:
    """Static display row that never contributes to the score."""
    return Titan(name=name, display_value=PLACEHOLDER_VALUE, active=False, placeholder=True)


def factor_rows(metrics: DerivedMetrics, factors: FactorSet) -> List[Titan]:
    """Display rows for the shared factors, in display order."""
    if metrics.regime is Regime.CALCULATING:
        volatility = PLACEHOLDER_VALUE
    else:
        volatility = f"{metrics.volatility:.2f}"
    return [
        Titan(KINETIC_ROW, f"{metrics.kinetic:.1f}", factors.kinetic),
        Titan(PRESSURE_ROW, f"{metrics.pressure:.2f}", factors.pressure),
        Titan(ELASTICITY_ROW, f"{metrics.elasticity:.2f}", factors.elasticity),
        Titan(REGIME_ROW, volatility, factors.regime),
    ]


class ScorePolicy(ABC):
    """Strategy interface for turning metrics into a verdict."""

    name: str = ""

    def __init__(self, thresholds: Optional[FactorThresholds] = None):
        self.thresholds = thresholds or FactorThresholds()

    @abstractmethod
    def evaluate(self, metrics: DerivedMetrics) -> Verdict:
        """Score the metrics. Must not raise for any metric values."""


class StarCountPolicy(ScorePolicy):
    """Five-factor star count with an alignment factor."""

    name = STAR_COUNT

    execute_score = 4
    prepare_score = 3

    @staticmethod
    def is_aligned(metrics: DerivedMetrics) -> bool:
        """Kinetic and pressure are both non-zero and point the same way."""
        return metrics.kinetic * metrics.pressure > 0

    def evaluate(self, metrics: DerivedMetrics) -> Verdict:
        factors = FactorSet.evaluate(metrics, self.thresholds)
        aligned = self.is_aligned(metrics)
        score = factors.count + int(aligned)

        if score >= self.execute_score:
            signal = Signal.EXECUTE_LONG if metrics.kinetic > 0 else Signal.EXECUTE_SHORT
        elif score == self.prepare_score:
            signal = Signal.PREPARE
        else:
            signal = Signal.STANDBY

        titans = factor_rows(metrics, factors)
        titans.append(placeholder_row(BASIS_ROW))
        titans.append(Titan(ALIGNMENT_ROW, f"{metrics.kinetic * metrics.pressure:.2f}", aligned))
        return Verdict(score=score, signal=signal, titans=tuple(titans))


class TrapBreakPolicy(ScorePolicy):
    """Four-factor score with trap/break guards for the signal."""

    name = TRAP_BREAK

    def __init__(
        self,
        thresholds: Optional[FactorThresholds] = None,
        guards: Optional[TrapBreakThresholds] = None,
    ):
        super().__init__(thresholds)
        self.guards = guards or TrapBreakThresholds()

    def classify(self, kinetic: float, elasticity: float) -> Signal:
        g = self.guards
        if kinetic > g.kinetic and elasticity < g.trap_elasticity:
            return Signal.SHORT_TRAP
        if kinetic > g.kinetic and elasticity > g.break_elasticity:
            return Signal.LONG_BREAK
        if kinetic < -g.kinetic and elasticity > -g.trap_elasticity:
            return Signal.LONG_TRAP
        if kinetic < -g.kinetic and elasticity < -g.break_elasticity:
            return Signal.SHORT_BREAK
        return Signal.OBSERVE

    def evaluate(self, metrics: DerivedMetrics) -> Verdict:
        factors = FactorSet.evaluate(metrics, self.thresholds)
        titans = factor_rows(metrics, factors)
        titans.append(placeholder_row(BASIS_ROW))
        titans.append(placeholder_row(ALIGNMENT_ROW))
        return Verdict(
            score=factors.count,
            signal=self.classify(metrics.kinetic, metrics.elasticity),
            titans=tuple(titans),
        )


def build_policy(config: EngineConfig) -> ScorePolicy:
    """Instantiate the policy named by config.policy."""
    if config.policy == STAR_COUNT:
        return StarCountPolicy(config.factors)
    if config.policy == TRAP_BREAK:
        return TrapBreakPolicy(config.factors, config.guards)
    raise ValueError(f"unknown policy {config.policy!r}")
