from abc import ABC, abstractmethod
from typing import Callable, List, Sequence
from .dto import AccountView, MarketInfo, OrderRequest

OrderBookCallback = Callable[[Sequence[dict], Sequence[dict]], None]


class OrderSubmitter(ABC):
    @abstractmethod
    def submit(self, order: OrderRequest) -> str: ...  # returns tx hash


class OrderCanceler(ABC):
    @abstractmethod
    def cancel_all(self) -> None: ...


class AccountQuery(ABC):
    @abstractmethod
    def fetch(self, account_id: int) -> List[AccountView]: ...


class MarketDirectory(ABC):
    @abstractmethod
    def find_market(self, symbol: str) -> MarketInfo: ...


class MarketDataFeed(ABC):
    @abstractmethod
    def subscribe(self, market_id: int, on_update: OrderBookCallback) -> Callable[[], None]: ...  # returns unsubscribe


class ParameterSource(ABC):
    name: str = ""

    @abstractmethod
    def read(self) -> bytes: ...
