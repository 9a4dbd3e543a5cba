import threading
import time
from typing import Callable, Optional

from loguru import logger

from lighter_mm.domain.dto import AccountSnapshot
from lighter_mm.domain.errors import TransportFailure
from lighter_mm.domain.interfaces import AccountQuery


def parse_float(raw) -> float:
    # tolerancja: niepoprawne pole liczbowe -> 0.0 zamiast błędu
    try:
        return float(raw)
    except (TypeError, ValueError):
        return 0.0


class AccountStateCache:
    def __init__(self, query: AccountQuery, market_id: int, now_fn: Optional[Callable[[], float]] = None):
        self.query = query
        self.market_id = market_id
        self._now = now_fn or time.monotonic
        self._lock = threading.Lock()
        self._snapshot: Optional[AccountSnapshot] = None

    @property
    def snapshot(self) -> Optional[AccountSnapshot]:
        with self._lock:
            return self._snapshot

    @property
    def position(self) -> float:
        snap = self.snapshot
        return snap.position_size if snap else 0.0

    @property
    def available_capital(self) -> float:
        snap = self.snapshot
        return snap.available_capital if snap else 0.0

    def is_stale(self, interval_sec: float) -> bool:
        snap = self.snapshot
        return snap is None or self._now() - snap.fetched_at > interval_sec

    def refresh(self, account_id: int) -> AccountSnapshot:
        accounts = self.query.fetch(account_id)
        if not accounts:
            raise TransportFailure("account response empty")

        # brak naszego indeksu -> bierzemy pierwsze konto z odpowiedzi
        account = next((a for a in accounts if a.index == account_id), accounts[0])
        if account.index != account_id:
            logger.warning(f"Konto {account_id} nie występuje w odpowiedzi, używam konta {account.index}")

        position = 0.0
        for pos in account.positions:
            if pos.market_id == self.market_id:
                position = parse_float(pos.position) * (-1 if pos.sign < 0 else 1)
                break

        snap = AccountSnapshot(
            available_capital=parse_float(account.available_balance),
            portfolio_value=parse_float(account.total_asset_value),
            position_size=position,
            fetched_at=self._now(),
        )
        with self._lock:
            self._snapshot = snap
        return snap
