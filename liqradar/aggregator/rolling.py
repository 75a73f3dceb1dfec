# liqradar/aggregator/rolling.py
from collections import deque


class RollingAggregator:
    """Per-symbol bounded sample history (oldest evicted first)"""

    def __init__(self, capacity: int, min_samples: int = 1):
        if capacity < 1:
            raise ValueError(f"capacity must be positive: {capacity}")
        self.capacity = capacity
        self.min_samples = max(1, min_samples)
        self._history: dict[str, deque[float]] = {}

    def record(self, symbol: str, value: float) -> None:
        history = self._history.get(symbol)
        if history is None:
            history = deque(maxlen=self.capacity)
            self._history[symbol] = history
        history.append(value)

    def samples(self, symbol: str) -> list[float]:
        return list(self._history.get(symbol, ()))

    def count(self, symbol: str) -> int:
        return len(self._history.get(symbol, ()))

    def average(self, symbol: str) -> float | None:
        history = self._history.get(symbol)
        if not history or len(history) < self.min_samples:
            return None
        return sum(history) / len(history)

    def spike_ratio(self, symbol: str, value: float) -> float:
        avg = self.average(symbol)
        if not avg:
            avg = 1.0
        return value / avg

    def reset(self, symbol: str | None = None) -> None:
        if symbol is None:
            self._history.clear()
        else:
            self._history.pop(symbol, None)

    def __len__(self) -> int:
        return len(self._history)
