"""
Ring Buffer - Fixed-size circular buffer for the engine's bounded windows.

Backs the trade buffer and the imbalance history. Appends are O(1); once
the buffer is full the oldest entry is overwritten (FIFO eviction).
"""

from typing import Generic, Iterator, List, Optional, TypeVar

T = TypeVar('T')


class RingBuffer(Generic[T]):
    """
    Fixed-size circular buffer with O(1) append.

    Example:
        buf = RingBuffer[float](maxlen=3)
        for v in (1.0, 2.0, 3.0, 4.0):
            buf.append(v)
        buf.to_list()  # [2.0, 3.0, 4.0]
    """

    __slots__ = ('_buffer', '_maxlen', '_head', '_size')

    def __init__(self, maxlen: int):
        if maxlen <= 0:
            raise ValueError("maxlen must be positive")
        self._buffer: List[Optional[T]] = [None] * maxlen
        self._maxlen = maxlen
        self._head = 0  # Next write position
        self._size = 0

    def append(self, item: T) -> None:
        """Append item, evicting the oldest one when full."""
        self._buffer[self._head] = item
        self._head = (self._head + 1) % self._maxlen
        if self._size < self._maxlen:
            self._size += 1

    def __len__(self) -> int:
        return self._size

    def _start(self) -> int:
        return (self._head - self._size) % self._maxlen

    def __getitem__(self, index: int) -> T:
        """
        Get item by index. buf[0] is the oldest, buf[-1] the newest.
        """
        if index < 0:
            index += self._size
        if index < 0 or index >= self._size:
            raise IndexError(f"index {index} out of range for size {self._size}")
        return self._buffer[(self._start() + index) % self._maxlen]  # type: ignore[return-value]

    def __iter__(self) -> Iterator[T]:
        """Iterate from oldest to newest."""
        start = self._start()
        for i in range(self._size):
            yield self._buffer[(start + i) % self._maxlen]  # type: ignore[misc]

    def to_list(self) -> List[T]:
        """Convert to list (oldest first)."""
        return list(self)

    def last(self, n: int) -> List[T]:
        """Get last n items, oldest first."""
        if n <= 0:
            return []
        n = min(n, self._size)
        return [self[i] for i in range(self._size - n, self._size)]
