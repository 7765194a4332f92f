"""
Engine Configuration

Centralizes window sizes, thresholds and the policy choices that differ
between the two observed engine variants. Presets reproduce each variant:

    EngineConfig.star_count()   hold elasticity on thin volume, 20-trade
                                micro window, regime thresholds 0.10 / 0.35
    EngineConfig.trap_break()   reset elasticity on thin volume, 15-trade
                                micro window, regime thresholds 0.10 / 0.40
"""

from dataclasses import dataclass, field
from enum import Enum

EPSILON = 1e-12

STAR_COUNT = "star_count"
TRAP_BREAK = "trap_break"
POLICY_NAMES = (STAR_COUNT, TRAP_BREAK)


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Divide, returning default when the denominator is (near) zero."""
    return numerator / denominator if abs(denominator) > EPSILON else default


class ThinVolumePolicy(Enum):
    """What elasticity does when the micro window traded too little volume."""

    HOLD = "hold"
    RESET_TO_ZERO = "reset_to_zero"


@dataclass(frozen=True)
class WindowConfig:
    """Bounded window sizes."""

    trade_capacity: int = 1000
    flow_window_seconds: float = 3.0

    # Elasticity micro-burst window
    micro_window_trades: int = 20
    min_micro_volume: float = 0.01
    elasticity_scale: float = 10_000.0

    imbalance_capacity: int = 120
    min_regime_samples: int = 10  # Classification needs strictly more

    def __post_init__(self):
        if self.trade_capacity <= 0:
            raise ValueError("trade_capacity must be positive")
        if self.flow_window_seconds <= 0:
            raise ValueError("flow_window_seconds must be positive")
        if not 2 <= self.micro_window_trades <= self.trade_capacity:
            raise ValueError("micro_window_trades must be between 2 and trade_capacity")
        if self.min_micro_volume < 0:
            raise ValueError("min_micro_volume must be non-negative")
        if self.imbalance_capacity <= 0:
            raise ValueError("imbalance_capacity must be positive")
        if not 0 <= self.min_regime_samples < self.imbalance_capacity:
            raise ValueError("min_regime_samples must be below imbalance_capacity")


@dataclass(frozen=True)
class RegimeThresholds:
    """Volatility cut points: below low is stagnant, at or above high is volatile."""

    low: float = 0.10
    high: float = 0.35

    def __post_init__(self):
        if not 0 <= self.low < self.high:
            raise ValueError(f"regime thresholds must satisfy 0 <= low < high, got {self.low}, {self.high}")


@dataclass(frozen=True)
class FactorThresholds:
    """Absolute-value thresholds for the scoring factors."""

    kinetic: float = 50.0
    pressure: float = 0.3
    elasticity: float = 2.0


@dataclass(frozen=True)
class TrapBreakThresholds:
    """Raw guards for the trap/break signal mapping."""

    kinetic: float = 50.0
    trap_elasticity: float = 0.5
    break_elasticity: float = 2.0


@dataclass
class EngineConfig:
    """Configuration for one engine instance (one symbol)."""

    symbol: str = "btcusdt"
    policy: str = STAR_COUNT

    windows: WindowConfig = field(default_factory=WindowConfig)
    regime: RegimeThresholds = field(default_factory=RegimeThresholds)
    factors: FactorThresholds = field(default_factory=FactorThresholds)
    guards: TrapBreakThresholds = field(default_factory=TrapBreakThresholds)

    on_thin_volume: ThinVolumePolicy = ThinVolumePolicy.HOLD

    # Development builds: invariant breaches raise instead of clamping
    strict: bool = False

    def __post_init__(self):
        self.symbol = self.symbol.lower().replace("/", "").replace("-", "")
        if not self.symbol:
            raise ValueError("symbol must not be empty")
        if self.policy not in POLICY_NAMES:
            raise ValueError(f"unknown policy {self.policy!r}, expected one of {POLICY_NAMES}")
        if isinstance(self.on_thin_volume, str):
            self.on_thin_volume = ThinVolumePolicy(self.on_thin_volume)

    @classmethod
    def star_count(cls, symbol: str = "btcusdt", **overrides) -> "EngineConfig":
        """Variant scoring five factors, holding elasticity on thin volume."""
        params = dict(
            symbol=symbol,
            policy=STAR_COUNT,
            windows=WindowConfig(micro_window_trades=20),
            regime=RegimeThresholds(low=0.10, high=0.35),
            on_thin_volume=ThinVolumePolicy.HOLD,
        )
        params.update(overrides)
        return cls(**params)

    @classmethod
    def trap_break(cls, symbol: str = "btcusdt", **overrides) -> "EngineConfig":
        """Variant with trap/break guards, resetting elasticity on thin volume."""
        params = dict(
            symbol=symbol,
            policy=TRAP_BREAK,
            windows=WindowConfig(micro_window_trades=15),
            regime=RegimeThresholds(low=0.10, high=0.40),
            on_thin_volume=ThinVolumePolicy.RESET_TO_ZERO,
        )
        params.update(overrides)
        return cls(**params)
