# lighter_mm/backend/data/market_data.py
from __future__ import annotations

import json
import logging
import threading
from typing import Callable, Dict, List, Optional

import websocket

from lighter_mm.domain.errors import ExchangeNetworkError
from lighter_mm.domain.interfaces import MarketDataFeed, OrderBookCallback

SNAPSHOT_TYPE = "subscribed/order_book"
UPDATE_TYPE = "update/order_book"


class LocalOrderBook:
    """
    Lokalna kopia order booka: snapshot przy subskrypcji, potem przyrostowe zmiany.
    Poziom o rozmiarze 0 jest usuwany.
    """

    def __init__(self) -> None:
        self.bids: Dict[str, str] = {}
        self.asks: Dict[str, str] = {}

    def apply(self, book: dict, snapshot: bool) -> None:
        if snapshot:
            self.bids.clear()
            self.asks.clear()
        _merge(self.bids, book.get("bids") or [])
        _merge(self.asks, book.get("asks") or [])

    def top(self, depth: int = 5) -> tuple[List[dict], List[dict]]:
        bids = sorted(self.bids.items(), key=lambda kv: float(kv[0]), reverse=True)[:depth]
        asks = sorted(self.asks.items(), key=lambda kv: float(kv[0]))[:depth]
        return (
            [{"price": p, "size": s} for p, s in bids],
            [{"price": p, "size": s} for p, s in asks],
        )


def _merge(side: Dict[str, str], levels: List[dict]) -> None:
    for lvl in levels:
        price, size = lvl.get("price"), lvl.get("size")
        try:
            float(price)
            empty = float(size) == 0
        except (TypeError, ValueError):
            continue
        if empty:
            side.pop(price, None)
        else:
            side[price] = size


class LighterOrderBookStream(MarketDataFeed):
    """
    Strumień order booka Lightera przez websocket-client (WebSocketApp w wątku daemon).
    Callback dostaje kolejne aktualizacje po jednej (jeden wątek odbiorczy).
    """

    def __init__(self, url: str, logger: Optional[logging.Logger] = None, reconnect_sec: int = 5) -> None:
        self.url = url
        self.reconnect_sec = reconnect_sec
        self.log = logger or logging.getLogger(self.__class__.__name__)

    def subscribe(self, market_id: int, on_update: OrderBookCallback) -> Callable[[], None]:
        book = LocalOrderBook()
        channel = f"order_book/{market_id}"

        def on_open(ws):
            self.log.info("Połączono z %s, subskrybuję %s", self.url, channel)
            ws.send(json.dumps({"type": "subscribe", "channel": channel}))

        def on_message(ws, message):
            self.handle_message(ws, message, book, on_update)

        def on_error(ws, error):
            self.log.warning("Błąd websocket: %s", error)

        def on_close(ws, close_status_code, close_msg):
            self.log.info("Websocket zamknięty (%s %s)", close_status_code, close_msg)

        if not self.url.startswith(("ws://", "wss://")):
            raise ExchangeNetworkError(f"niepoprawny adres websocket: {self.url}")
        app = websocket.WebSocketApp(
            self.url,
            on_open=on_open,
            on_message=on_message,
            on_error=on_error,
            on_close=on_close,
        )

        thread = threading.Thread(
            target=app.run_forever,
            kwargs={"reconnect": self.reconnect_sec},
            name=f"ob-stream-{market_id}",
            daemon=True,
        )
        thread.start()

        def unsubscribe() -> None:
            app.keep_running = False
            app.close()
            thread.join(timeout=5)

        return unsubscribe

    def handle_message(self, ws, message: str, book: LocalOrderBook, on_update: OrderBookCallback) -> None:
        try:
            msg = json.loads(message)
        except ValueError:
            self.log.debug("Pomijam nie-JSON: %.120s", message)
            return

        kind = msg.get("type")
        if kind == "ping":
            ws.send(json.dumps({"type": "pong"}))
            return
        if kind not in (SNAPSHOT_TYPE, UPDATE_TYPE):
            return

        book.apply(msg.get("order_book") or {}, snapshot=kind == SNAPSHOT_TYPE)
        bids, asks = book.top()
        try:
            on_update(bids, asks)
        except Exception:
            self.log.exception("Callback order booka rzucił wyjątek")
