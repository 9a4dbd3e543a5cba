from dataclasses import dataclass, field
from typing import List, Optional, Union

from .dto import OrderRecord


@dataclass
class StrategyConfig:
    account_index: int
    market_symbol: str = "PAXG"
    spread: float = 0.00035
    base_amount: float = 0.047
    use_dynamic_sizing: bool = True
    capital_usage: float = 0.99
    safety_margin: float = 0.01
    order_timeout_sec: float = 90.0
    params_refresh_sec: float = 900.0
    require_params: bool = False
    close_long_on_startup: bool = False
    account_refresh_sec: float = 15.0
    min_position_value_usd: float = 15.0
    tick_interval_sec: float = 3.0
    param_candidates: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class NoOrder:
    pass


@dataclass(frozen=True)
class OrderOpen:
    order: OrderRecord


OrderState = Union[NoOrder, OrderOpen]


def open_order(state: OrderState) -> Optional[OrderRecord]:
    return state.order if isinstance(state, OrderOpen) else None
