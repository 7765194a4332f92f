"""
Rolling Trade Window

Bounded buffer of recent trades feeding two metrics:

- Net flow ("kinetic"): buyer-initiated minus seller-initiated volume
  over a trailing time window ending at the newest trade.
- Elasticity ("micro-burst"): price displacement per unit of traded
  volume over the last N trades, scaled to a readable magnitude.

Net flow is recomputed by scanning the whole buffer on every trade. The
buffer is capped, so each update is O(capacity).
"""

import logging
from typing import List, Optional

from .config import ThinVolumePolicy, WindowConfig
from .data_types import Trade
from .errors import enforce_non_negative
from .ring_buffer import RingBuffer

logger = logging.getLogger(__name__)


class TradeWindow:
    """
    Trade buffer plus the metrics derived from it.

    Example:
        window = TradeWindow()
        window.record_trade(100.0, 2.0, True, timestamp=1.0)
        window.kinetic     # 2.0
        window.price       # 100.0
    """

    def __init__(
        self,
        config: Optional[WindowConfig] = None,
        on_thin_volume: ThinVolumePolicy = ThinVolumePolicy.HOLD,
        strict: bool = False,
    ):
        self.config = config or WindowConfig()
        self.on_thin_volume = on_thin_volume
        self.strict = strict

        self._trades = RingBuffer[Trade](self.config.trade_capacity)

        self.price: float = 0.0
        self.kinetic: float = 0.0
        self.elasticity: float = 0.0
        self.invariant_clamps: int = 0

    def __len__(self) -> int:
        return len(self._trades)

    @property
    def trades(self) -> List[Trade]:
        """Buffered trades, oldest first."""
        return self._trades.to_list()

    def record_trade(
        self,
        price: float,
        quantity: float,
        buyer_initiated: bool,
        timestamp: float,
    ) -> Trade:
        """
        Append a trade and recompute net flow and elasticity.

        The latest price is updated unconditionally.
        """
        checked_qty = enforce_non_negative(quantity, "trade quantity", self.strict)
        if checked_qty != quantity:
            self.invariant_clamps += 1

        trade = Trade(price=price, quantity=checked_qty, buyer_initiated=buyer_initiated, timestamp=timestamp)
        self._trades.append(trade)

        self.price = price
        self.kinetic = self.net_flow(timestamp)
        self._update_elasticity()
        return trade

    def net_flow(self, now: float) -> float:
        """Buy volume minus sell volume for trades with timestamp in (now - window, now]."""
        cutoff = now - self.config.flow_window_seconds
        return sum((t.signed_quantity for t in self._trades if cutoff < t.timestamp <= now), 0.0)

    def micro_elasticity(self) -> Optional[float]:
        """
        Elasticity over the micro window.

        Returns None when fewer than two trades are buffered or the
        window's volume does not exceed the minimum floor.
        """
        micro = self._trades.last(self.config.micro_window_trades)
        if len(micro) < 2:
            return None

        micro_vol = sum(t.quantity for t in micro)
        if micro_vol <= self.config.min_micro_volume:
            return None

        price_delta = micro[-1].price - micro[0].price
        return (price_delta / micro_vol) * self.config.elasticity_scale

    def _update_elasticity(self) -> None:
        if len(self._trades) < 2:
            return

        value = self.micro_elasticity()
        if value is not None:
            self.elasticity = value
        elif self.on_thin_volume is ThinVolumePolicy.RESET_TO_ZERO:
            self.elasticity = 0.0
        # HOLD keeps the previous value
