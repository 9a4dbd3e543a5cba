from dataclasses import dataclass, field
from enum import Enum
from typing import List


class Side(str, Enum):
    BUY = "buy"
    SELL = "sell"


@dataclass(frozen=True)
class MarketInfo:
    market_id: int
    symbol: str
    price_tick: float
    size_tick: float


@dataclass
class MidPriceSample:
    price: float
    observed_at: float # monotonic seconds


@dataclass
class AccountSnapshot:
    available_capital: float
    portfolio_value: float
    position_size: float
    fetched_at: float


@dataclass
class PricingParameters:
    delta_ask: float
    delta_bid: float
    loaded_at: float

    def is_valid(self) -> bool:
        return self.delta_ask > 0 and self.delta_bid > 0


@dataclass
class OrderRequest:
    client_order_index: int
    market_id: int
    side: Side
    price: float
    size: float
    reduce_only: bool = False
    post_only: bool = True


@dataclass
class OrderRecord:
    id: int
    side: Side
    price: float
    size: float
    placed_at: float
    reduce_only: bool
    reference_price: float # mid w chwili złożenia zlecenia


@dataclass
class PositionView:
    market_id: int
    position: str
    sign: int = 1


@dataclass
class AccountView:
    index: int
    available_balance: str
    total_asset_value: str
    positions: List[PositionView] = field(default_factory=list)
