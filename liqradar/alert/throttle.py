# liqradar/alert/throttle.py
import time


def now_ms() -> int:
    return int(time.time() * 1000)


class SignalThrottle:
    """Suppress repeat signals for the same (asset, kind) inside a cooldown window"""

    def __init__(self, cooldown_seconds: float):
        self.cooldown_ms = int(cooldown_seconds * 1000)
        self._last: dict[tuple[str, str], int] = {}

    def allow(self, asset: str, kind: str, now: int | None = None) -> bool:
        now = now if now is not None else now_ms()
        last = self._last.get((asset, kind))
        if last is None:
            return True
        return now - last >= self.cooldown_ms

    def record(self, asset: str, kind: str, now: int | None = None) -> None:
        now = now if now is not None else now_ms()
        self._last[(asset, kind)] = now
        self._purge(now)

    def check_and_record(self, asset: str, kind: str, now: int | None = None) -> bool:
        now = now if now is not None else now_ms()
        if not self.allow(asset, kind, now):
            return False
        self.record(asset, kind, now)
        return True

    def _purge(self, now: int) -> None:
        horizon = now - self.cooldown_ms * 10
        stale = [k for k, ts in self._last.items() if ts < horizon]
        for k in stale:
            del self._last[k]

    def reset(self) -> None:
        self._last.clear()

    def __len__(self) -> int:
        return len(self._last)
