"""
microflow - streaming market microstructure analytics.

Ingests trade prints and order-book deltas for one symbol, derives net
flow, book imbalance and short-horizon elasticity, classifies the
volatility regime and publishes an immutable verdict snapshot.
"""

from .engine import (
    EngineConfig,
    EngineState,
    FeedTransport,
    MetricsToolBridge,
    MicrostructureEngine,
    Regime,
    Signal,
    ThinVolumePolicy,
)
from .logging_config import get_logger, setup_logging

__version__ = "0.1.0"

__all__ = [
    "EngineConfig",
    "EngineState",
    "FeedTransport",
    "MetricsToolBridge",
    "MicrostructureEngine",
    "Regime",
    "Signal",
    "ThinVolumePolicy",
    "get_logger",
    "setup_logging",
]
