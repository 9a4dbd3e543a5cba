import pytest

from lighter_mm.domain.dto import AccountView, MarketInfo, PositionView
from lighter_mm.domain.interfaces import AccountQuery, ParameterSource
from lighter_mm.domain.models import StrategyConfig


class FakeClock:
    """Ręcznie przesuwany zegar monotoniczny."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, sec: float) -> None:
        self.now += sec


class StaticAccounts(AccountQuery):
    def __init__(self, accounts=None):
        self.accounts = accounts or []
        self.calls = 0

    def fetch(self, account_id):
        self.calls += 1
        return self.accounts


class MemorySource(ParameterSource):
    def __init__(self, name: str, data: bytes | None = None, error: Exception | None = None):
        self.name = name
        self.data = data
        self.error = error
        self.reads = 0

    def read(self) -> bytes:
        self.reads += 1
        if self.error is not None:
            raise self.error
        return self.data


def account(index=7, available="1000", total="1000", position=None, market_id=1, sign=1):
    positions = [] if position is None else [PositionView(market_id=market_id, position=position, sign=sign)]
    return AccountView(index=index, available_balance=available, total_asset_value=total, positions=positions)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def market():
    return MarketInfo(market_id=1, symbol="PAXG", price_tick=0.01, size_tick=0.001)


@pytest.fixture
def cfg():
    return StrategyConfig(account_index=7)
