import threading
import time
from typing import Callable, Optional, Sequence

from loguru import logger

from lighter_mm.app.account_service import AccountStateCache
from lighter_mm.app.lifecycle import OrderLifecycleController, POSITION_EPSILON, TickOutcome
from lighter_mm.app.params_service import ParameterStore
from lighter_mm.app.price_feed import MidPriceFeed
from lighter_mm.domain.dto import Side
from lighter_mm.domain.errors import EngineError, SizingFailure, StartupError, TransportFailure
from lighter_mm.domain.interfaces import (
    AccountQuery,
    MarketDataFeed,
    MarketDirectory,
    OrderCanceler,
    OrderSubmitter,
    ParameterSource,
)
from lighter_mm.domain.models import NoOrder, StrategyConfig


class MarketMakerOrchestrator:
    """
    Spina feed ceny, cache konta, parametry i kontroler zleceń.
    Dwa wyzwalacze: push order booka (wątek WS) i stały tick pętli sterującej.
    """

    INITIAL_DATA_TIMEOUT_SEC = 30.0
    CLOSE_LONG_TIMEOUT_SEC = 60.0
    CLOSE_LONG_POLL_SEC = 2.0

    def __init__(
        self,
        cfg: StrategyConfig,
        directory: MarketDirectory,
        market_data: MarketDataFeed,
        submitter: OrderSubmitter,
        canceler: OrderCanceler,
        account_query: AccountQuery,
        param_sources: Sequence[ParameterSource],
        stop: Optional[threading.Event] = None,
        now_fn: Optional[Callable[[], float]] = None,
    ):
        self.cfg = cfg
        self.directory = directory
        self.market_data = market_data
        self.submitter = submitter
        self.canceler = canceler
        self.account_query = account_query
        self.param_sources = list(param_sources)
        self.stop = stop or threading.Event()
        self._now = now_fn or time.monotonic

        self.market = None
        self.feed: Optional[MidPriceFeed] = None
        self.account: Optional[AccountStateCache] = None
        self.controller: Optional[OrderLifecycleController] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    def start(self) -> None:
        """Sekwencja startowa. Każdy błąd jest fatalny (StartupError)."""
        try:
            self.market = self.directory.find_market(self.cfg.market_symbol)
        except (TransportFailure, LookupError) as e:
            raise StartupError(f"unable to locate market {self.cfg.market_symbol}: {e}") from e
        logger.info(f"Start market-makera dla {self.market.symbol} (id={self.market.market_id})")

        # czysty start: anuluj stare zlecenia
        try:
            self.canceler.cancel_all()
        except TransportFailure as e:
            logger.warning(f"Nie udało się anulować istniejących zleceń: {e}")

        self.feed = MidPriceFeed(now_fn=self._now)
        self.account = AccountStateCache(self.account_query, self.market.market_id, now_fn=self._now)
        params = ParameterStore(self.param_sources, self.cfg.params_refresh_sec, now_fn=self._now)
        self.controller = OrderLifecycleController(
            self.cfg, self.market, self.feed, self.account, params, self.submitter, self.canceler, now_fn=self._now
        )

        try:
            self._unsubscribe = self.market_data.subscribe(self.market.market_id, self.feed.observe)
        except TransportFailure as e:
            raise StartupError(f"subscribe order book: {e}") from e

        if not self.feed.wait_for_first(self.INITIAL_DATA_TIMEOUT_SEC, self.stop):
            if self.stop.is_set():
                return
            raise StartupError("timeout waiting for initial mid price")

        try:
            snap = self.account.refresh(self.cfg.account_index)
        except TransportFailure as e:
            raise StartupError(f"initial account fetch: {e}") from e
        logger.info(
            f"Konto gotowe: available={snap.available_capital:.2f} "
            f"portfolio={snap.portfolio_value:.2f} position={snap.position_size:.6f}"
        )

        if self.cfg.close_long_on_startup:
            self.close_existing_long()

    def close_existing_long(self) -> None:
        position = self.account.position
        if position <= 0:
            return
        mid, fresh = self.feed.read()
        if not fresh or mid <= 0:
            raise StartupError("mid price unavailable for close-long")

        price = mid * (1 + self.cfg.spread)
        try:
            self.controller.place(Side.SELL, price, position, reduce_only=True, reference_price=mid)
        except (TransportFailure, SizingFailure) as e:
            raise StartupError(f"place reduce-only sell: {e}") from e
        logger.info("Złożono reduce-only sell zamykające początkową pozycję")

        deadline = self._now() + self.CLOSE_LONG_TIMEOUT_SEC
        while not self.stop.wait(self.CLOSE_LONG_POLL_SEC):
            if self._now() >= deadline:
                raise StartupError("timed out waiting for position to close")
            try:
                remaining = self.account.refresh(self.cfg.account_index).position_size
            except TransportFailure as e:
                logger.warning(f"Błąd odświeżania konta podczas zamykania pozycji: {e}")
                continue
            if abs(remaining) < POSITION_EPSILON:
                logger.info("Pozycja zamknięta")
                self.controller.side = Side.BUY
                self.controller.state = NoOrder()
                return

    def tick(self) -> Optional[TickOutcome]:
        try:
            return self.controller.step()
        except EngineError as e:
            logger.warning(f"[{self.market.symbol}] Błąd kroku: {e}")
            return None
        except Exception:
            # nieoczekiwany błąd przerywa tylko bieżący tick
            logger.exception(f"[{self.market.symbol}] Nieoczekiwany błąd kroku")
            return None

    def run(self) -> None:
        try:
            self.start()
            if self.stop.is_set():
                return
            logger.info(f"Pętla co {self.cfg.tick_interval_sec}s. Przerwij Ctrl+C")
            while not self.stop.wait(self.cfg.tick_interval_sec):
                self.tick()
        finally:
            self.shutdown()

    def shutdown(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        logger.info("Zatrzymano market-makera")
