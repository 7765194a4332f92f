"""
Core data types for the microstructure engine.

Raw inputs (trades), derived metrics, the verdict produced by a scoring
policy and the immutable snapshot handed to subscribers.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Tuple

# =============================================================================
# RAW DATA
# =============================================================================


@dataclass(frozen=True, slots=True)
class Trade:
    """
    Single recorded trade print.

    buyer_initiated is the inverse of the exchange "is buyer the maker"
    flag: a buyer lifting the ask is buyer-initiated.
    """

    price: float
    quantity: float
    buyer_initiated: bool
    timestamp: float  # seconds

    @property
    def signed_quantity(self) -> float:
        """Positive for buyer-initiated trades, negative otherwise."""
        return self.quantity if self.buyer_initiated else -self.quantity


# =============================================================================
# CLASSIFICATIONS
# =============================================================================


class Regime(Enum):
    """Volatility regime derived from imbalance dispersion."""

    CALCULATING = "CALCULATING"  # Not enough history yet
    STAGNANT = "STAGNANT"
    STABLE = "STABLE"
    VOLATILE = "VOLATILE"


class Signal(Enum):
    """
    Discrete trading verdict.

    The star-count policy emits STANDBY / PREPARE / EXECUTE_*; the
    trap/break policy emits OBSERVE and the four TRAP / BREAK signals.
    """

    STANDBY = "STANDBY"
    PREPARE = "PREPARE"
    EXECUTE_LONG = "EXECUTE LONG"
    EXECUTE_SHORT = "EXECUTE SHORT"

    OBSERVE = "OBSERVE"
    SHORT_TRAP = "SHORT (TRAP)"
    LONG_BREAK = "LONG (BREAK)"
    LONG_TRAP = "LONG (TRAP)"
    SHORT_BREAK = "SHORT (BREAK)"


# =============================================================================
# DERIVED VALUES
# =============================================================================


@dataclass(frozen=True, slots=True)
class DerivedMetrics:
    """Inputs to a scoring policy, all defaulting to the engine's initial values."""

    kinetic: float = 0.0
    pressure: float = 0.0
    elasticity: float = 0.0
    regime: Regime = Regime.CALCULATING
    volatility: float = 0.0


@dataclass(frozen=True, slots=True)
class Titan:
    """One display row: a scoring factor or a labeled placeholder."""

    name: str
    display_value: str
    active: bool
    placeholder: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "value": self.display_value,
            "active": self.active,
            "placeholder": self.placeholder,
        }


@dataclass(frozen=True)
class Verdict:
    """Output of a ScorePolicy."""

    score: int
    signal: Signal
    titans: Tuple[Titan, ...] = ()


# =============================================================================
# SNAPSHOT
# =============================================================================


@dataclass(frozen=True)
class EngineState:
    """
    Immutable engine snapshot.

    Every publish builds a new instance; titans is a tuple of frozen rows,
    so nothing reachable from a snapshot can change after it is handed out.
    """

    price: float = 0.0
    kinetic: float = 0.0
    pressure: float = 0.0
    elasticity: float = 0.0
    regime: Regime = Regime.CALCULATING
    score: int = 0
    signal: Signal = Signal.STANDBY
    titans: Tuple[Titan, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a fresh dictionary for serialization."""
        return {
            "price": self.price,
            "kinetic": self.kinetic,
            "pressure": self.pressure,
            "elasticity": self.elasticity,
            "regime": self.regime.value,
            "score": self.score,
            "signal": self.signal.value,
            "titans": [t.to_dict() for t in self.titans],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())
