"""
Order Book Mirror

Maintains bid and ask levels from incremental updates and derives the
top-of-book imbalance ("pressure").

A level quantity of zero removes the price; any other quantity upserts
it. Best levels are found by scanning the maps, which stay small
(top-N depth).
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from .config import safe_divide
from .errors import enforce_non_negative
from .ring_buffer import RingBuffer

logger = logging.getLogger(__name__)

PriceLevel = Tuple[float, float]


class OrderBookMirror:
    """
    Top-of-book state plus bounded imbalance history.

    pressure freezes at its last value while either side is empty; it is
    never reset to zero on a one-sided book.
    """

    def __init__(self, imbalance_capacity: int = 120, strict: bool = False):
        self.strict = strict
        self._bids: Dict[float, float] = {}
        self._asks: Dict[float, float] = {}
        self._imbalance_history = RingBuffer[float](imbalance_capacity)

        self.pressure: float = 0.0
        self.invariant_clamps: int = 0

    @property
    def bids(self) -> Dict[float, float]:
        """Copy of the bid map (price -> quantity)."""
        return dict(self._bids)

    @property
    def asks(self) -> Dict[float, float]:
        """Copy of the ask map (price -> quantity)."""
        return dict(self._asks)

    @property
    def is_two_sided(self) -> bool:
        return bool(self._bids) and bool(self._asks)

    @property
    def imbalance_history(self) -> List[float]:
        """Retained imbalance samples, oldest first."""
        return self._imbalance_history.to_list()

    def best_bid(self) -> Optional[float]:
        return max(self._bids) if self._bids else None

    def best_ask(self) -> Optional[float]:
        return min(self._asks) if self._asks else None

    def _checked(self, updates: Iterable[PriceLevel], label: str) -> List[PriceLevel]:
        levels = []
        for price, quantity in updates:
            checked = enforce_non_negative(quantity, f"{label} quantity", self.strict)
            if checked != quantity:
                self.invariant_clamps += 1
            levels.append((price, checked))
        return levels

    @staticmethod
    def _apply_side(side: Dict[float, float], levels: List[PriceLevel]) -> None:
        for price, quantity in levels:
            if quantity == 0:
                side.pop(price, None)
            else:
                side[price] = quantity

    def apply_book_delta(
        self,
        bid_updates: Iterable[PriceLevel],
        ask_updates: Iterable[PriceLevel],
    ) -> Optional[float]:
        """
        Apply both sides of an update and recompute pressure.

        Returns:
            The new imbalance sample, or None when the book is one-sided
            (pressure keeps its previous value and no sample is recorded).
        """
        # Validate both sides before mutating either
        bids = self._checked(bid_updates, "bid")
        asks = self._checked(ask_updates, "ask")
        self._apply_side(self._bids, bids)
        self._apply_side(self._asks, asks)

        if not self.is_two_sided:
            return None

        bid_vol = self._bids[max(self._bids)]
        ask_vol = self._asks[min(self._asks)]

        # Range: [-1, +1], positive = bid heavy
        ratio = safe_divide(bid_vol - ask_vol, bid_vol + ask_vol)
        self.pressure = ratio
        self._imbalance_history.append(ratio)
        return ratio
