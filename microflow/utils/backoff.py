"""
Exponential backoff with jitter for transport reconnects.
"""

import random


class ExponentialBackoff:
    """
    Exponential backoff calculator with jitter.

    Jitter spreads reconnects from many clients so they do not hit the
    exchange in lockstep after a shared outage.

    Args:
        base: Base delay in seconds (default: 1.0)
        multiplier: Exponential growth factor (default: 2.0)
        max_delay: Maximum delay cap in seconds (default: 30.0)
        jitter: Add up to +/-25% random jitter (default: True)

    Example:
        >>> backoff = ExponentialBackoff(base=1.0, multiplier=2.0, jitter=False)
        >>> [backoff.calculate(a) for a in range(4)]
        [1.0, 2.0, 4.0, 8.0]
    """

    def __init__(
        self,
        base: float = 1.0,
        multiplier: float = 2.0,
        max_delay: float = 30.0,
        jitter: bool = True,
    ):
        if base < 0 or max_delay < 0:
            raise ValueError("delays must be non-negative")
        if multiplier < 1:
            raise ValueError("multiplier must be >= 1")
        self.base = base
        self.multiplier = multiplier
        self.max_delay = max_delay
        self.jitter = jitter

    def calculate(self, attempt: int) -> float:
        """
        Delay before retry number attempt (0-indexed), in seconds.
        """
        delay = min(self.base * (self.multiplier ** attempt), self.max_delay)

        if self.jitter:
            jitter_amount = delay * 0.25
            delay += random.uniform(-jitter_amount, jitter_amount)

        return max(0.0, delay)
