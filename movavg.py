# movavg.py — fixed-window moving average used as a live latency gauge
from __future__ import annotations
from typing import List


class MovingAverage:
    """
    Circular buffer of the most recent `window` samples.

    add() overwrites the oldest slot; average() is the mean over the filled
    slots (all of them once the buffer has wrapped), or 0.0 when empty.
    Not thread-safe on its own; Telemetry serialises access.
    """

    def __init__(self, window: int = 100):
        if window < 1:
            raise ValueError("window must be >= 1")
        self.window = window
        self._values: List[float] = [0.0] * window
        self._pos = 0
        self._filled = False

    def add(self, value: float) -> None:
        self._values[self._pos] = value
        self._pos = (self._pos + 1) % self.window
        if not self._filled and self._pos == 0:
            self._filled = True

    def average(self) -> float:
        count = self.window if self._filled else self._pos
        if count == 0:
            return 0.0
        return sum(self._values[:count]) / count

    def __len__(self) -> int:
        return self.window if self._filled else self._pos
