"""
escrowledger/core/clock.py

THE ONLY SOURCE OF TIMESTAMPS IN ESCROWLEDGER.

The ledger runs on a logical clock (block height), not wall time.
PaymentStatus.timestamp and journal heights are read from here.
"""

import threading


class LogicalClock:
    """Monotonic block-height counter. Thread-safe."""

    def __init__(self, height: int = 0) -> None:
        if height < 0:
            raise ValueError(f"height must be >= 0, got {height}")
        self._lock   = threading.Lock()
        self._height = height

    @property
    def height(self) -> int:
        return self._height

    def advance(self, blocks: int = 1) -> int:
        """Move the clock forward and return the new height."""
        if blocks < 0:
            raise ValueError(f"clock cannot move backwards (blocks={blocks})")
        with self._lock:
            self._height += blocks
            return self._height

    def reset(self) -> None:
        with self._lock:
            self._height = 0

    def __repr__(self) -> str:
        return f"LogicalClock(height={self._height})"
