import time
from enum import Enum
from typing import Callable, Optional

from loguru import logger

from lighter_mm.app.account_service import AccountStateCache
from lighter_mm.app.order_service import make_order
from lighter_mm.app.params_service import ParameterStore
from lighter_mm.app.price_feed import MidPriceFeed
from lighter_mm.app.quote_service import target_price, target_size
from lighter_mm.domain.dto import MarketInfo, OrderRecord, Side
from lighter_mm.domain.errors import ConfigurationUnavailable, StaleData, TransportFailure
from lighter_mm.domain.interfaces import OrderCanceler, OrderSubmitter
from lighter_mm.domain.models import NoOrder, OrderOpen, OrderState, StrategyConfig, open_order

PRICE_MOVE_THRESHOLD = 0.001  # 0.1% ruchu mid względem ceny referencyjnej
POSITION_EPSILON = 1e-9


class TickOutcome(str, Enum):
    HOLD = "hold"
    PLACED = "placed"
    SKIPPED = "skipped"
    CANCELLED_PRICE_MOVE = "cancelled_price_move"
    CANCELLED_TIMEOUT = "cancelled_timeout"


class OrderLifecycleController:
    """
    Maszyna stanów pojedynczego zlecenia: NoOrder <-> OrderOpen.
    Strona (buy/sell) jest osobnym kontekstem i zmienia się tylko po anulowaniu z powodu timeoutu.
    """

    def __init__(
        self,
        cfg: StrategyConfig,
        market: MarketInfo,
        feed: MidPriceFeed,
        account: AccountStateCache,
        params: ParameterStore,
        submitter: OrderSubmitter,
        canceler: OrderCanceler,
        now_fn: Optional[Callable[[], float]] = None,
    ):
        self.cfg = cfg
        self.market = market
        self.feed = feed
        self.account = account
        self.params = params
        self.submitter = submitter
        self.canceler = canceler
        self._now = now_fn or time.monotonic
        self.side = Side.BUY
        self.state: OrderState = NoOrder()

    @property
    def order(self) -> Optional[OrderRecord]:
        return open_order(self.state)

    def step(self) -> TickOutcome:
        mid, fresh = self.feed.read()
        if not fresh or mid <= 0:
            raise StaleData("stale mid price")

        if self.account.is_stale(self.cfg.account_refresh_sec):
            try:
                self.account.refresh(self.cfg.account_index)
            except TransportFailure as e:
                logger.warning(f"[{self.market.symbol}] Błąd odświeżania konta: {e}")

        order = self.order
        if order is not None:
            return self._manage_open(order, mid)
        return self._quote(mid)

    def _manage_open(self, order: OrderRecord, mid: float) -> TickOutcome:
        ref = order.reference_price
        if ref > 0 and abs(mid - ref) / ref > PRICE_MOVE_THRESHOLD:
            logger.info(f"[{self.market.symbol}] Cena ruszyła {ref:.4f} -> {mid:.4f}, anuluję zlecenie {order.id}")
            self.cancel()
            return TickOutcome.CANCELLED_PRICE_MOVE

        if self._now() - order.placed_at > self.cfg.order_timeout_sec:
            logger.info(f"[{self.market.symbol}] Timeout zlecenia {order.id}, anuluję")
            self.cancel()
            try:
                self.account.refresh(self.cfg.account_index)
            except TransportFailure as e:
                logger.warning(f"[{self.market.symbol}] Błąd odświeżania konta po anulowaniu: {e}")
            self.evaluate_side(mid)
            return TickOutcome.CANCELLED_TIMEOUT

        return TickOutcome.HOLD

    def _quote(self, mid: float) -> TickOutcome:
        side = self.side
        price, ok = target_price(mid, side, self.params.load(), self.cfg.require_params, self.cfg.spread)
        if not ok:
            raise ConfigurationUnavailable("avellaneda params required but unavailable")

        spread_pct = (price - mid) / mid * 100
        logger.info(f"[{self.market.symbol}] mid={mid:.4f} side={side.value} target={price:.4f} ({spread_pct:+.4f}%)")

        size = target_size(
            side, mid, self.account.position, self.account.available_capital, self.cfg, self.market.size_tick
        )
        if size <= 0:
            if side == Side.BUY:
                logger.info(f"[{self.market.symbol}] Wyliczona ilość kupna <= 0, pomijam")
            return TickOutcome.SKIPPED

        self.place(side, price, size, reduce_only=side == Side.SELL, reference_price=mid)
        return TickOutcome.PLACED

    def place(self, side: Side, price: float, size: float, reduce_only: bool, reference_price: float) -> OrderRecord:
        req = make_order(self.market, side, price, size, reduce_only)
        tx_hash = self.submitter.submit(req)
        record = OrderRecord(
            id=req.client_order_index,
            side=side,
            price=req.price,
            size=req.size,
            placed_at=self._now(),
            reduce_only=reduce_only,
            reference_price=reference_price,
        )
        self.state = OrderOpen(record)
        logger.info(
            f"[{self.market.symbol}] {side.value.upper()} id={record.id} size={record.size:.6f} "
            f"price={record.price:.6f} tx={tx_hash} reduce_only={reduce_only}"
        )
        return record

    def cancel(self) -> None:
        # błąd transportu -> zlecenie dalej śledzone, ponowimy w kolejnym ticku
        self.canceler.cancel_all()
        self.state = NoOrder()

    def evaluate_side(self, mid: float) -> Side:
        position = self.account.position
        value = position * mid
        floor = self.cfg.min_position_value_usd

        if self.side == Side.BUY:
            if position > 0 and value >= floor:
                logger.info(f"[{self.market.symbol}] Cykl kupna wypełniony, przechodzę na sprzedaż (pos={position:.6f}, value={value:.2f})")
                self.side = Side.SELL
            elif position > 0:
                logger.info(f"[{self.market.symbol}] Pozycja {value:.2f} < {floor:.2f}, zostaję na kupnie")
        else:
            if abs(position) < POSITION_EPSILON:
                logger.info(f"[{self.market.symbol}] Pozycja zamknięta, przechodzę na kupno")
                self.side = Side.BUY
            elif value < floor:
                logger.info(f"[{self.market.symbol}] Resztka pozycji {value:.2f} < {floor:.2f}, przechodzę na kupno")
                self.side = Side.BUY
            else:
                logger.info(f"[{self.market.symbol}] Sprzedaż niepełna, pozostało {position:.6f}")
        return self.side
