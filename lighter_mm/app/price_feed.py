import threading
import time
from typing import Callable, Optional, Sequence, Tuple

from lighter_mm.domain.dto import MidPriceSample

FRESHNESS_WINDOW_SEC = 10.0


def _level_price(level) -> float:
    # poziom z WS: {"price": "...", "size": "..."} albo [price, size]
    raw = level["price"] if isinstance(level, dict) else level[0]
    return float(raw)


class MidPriceFeed:
    """Ostatnia cena mid z order booka. Last-write-wins, bez buforowania."""

    def __init__(self, now_fn: Optional[Callable[[], float]] = None, window_sec: float = FRESHNESS_WINDOW_SEC):
        self._now = now_fn or time.monotonic
        self._window = window_sec
        self._lock = threading.Lock()
        self._sample: Optional[MidPriceSample] = None

    def observe(self, bids: Sequence, asks: Sequence) -> None:
        if not bids or not asks:
            return
        try:
            best_bid = _level_price(bids[0])
            best_ask = _level_price(asks[0])
        except (KeyError, IndexError, TypeError, ValueError):
            return
        if best_bid <= 0 or best_ask <= 0:
            return

        sample = MidPriceSample(price=(best_bid + best_ask) / 2, observed_at=self._now())
        with self._lock:
            self._sample = sample

    def read(self) -> Tuple[float, bool]:
        with self._lock:
            sample = self._sample
        if sample is None:
            return 0.0, False
        if self._now() - sample.observed_at >= self._window:
            return 0.0, False
        return sample.price, True

    def wait_for_first(self, timeout_sec: float, stop: threading.Event, poll_sec: float = 0.5) -> bool:
        """Czeka na pierwszą świeżą cenę. False przy timeoucie albo zatrzymaniu."""
        deadline = self._now() + timeout_sec
        while not stop.is_set():
            mid, fresh = self.read()
            if fresh and mid > 0:
                return True
            if self._now() >= deadline:
                return False
            stop.wait(poll_sec)
        return False
