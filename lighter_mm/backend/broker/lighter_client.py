# lighter_mm/backend/broker/lighter_client.py
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from lighter_mm.domain.dto import AccountView, MarketInfo, OrderRequest, PositionView, Side
from lighter_mm.domain.errors import (
    ExchangeAuthError,
    ExchangeNetworkError,
    ExchangeOrderRejected,
    ExchangeRateLimitError,
    ExchangeValidationError,
    TransportFailure,
)
from lighter_mm.domain.interfaces import AccountQuery, MarketDirectory, OrderCanceler, OrderSubmitter
from lighter_mm.infra.signer import TxSigner

# ===== Stałe protokołu Lightera =====
TX_TYPE_CREATE_ORDER = 14
TX_TYPE_CANCEL_ALL_ORDERS = 16

ORDER_TYPE_LIMIT = 0
TIF_POST_ONLY = 2
CANCEL_ALL_IMMEDIATE = 0

ORDER_EXPIRY_SEC = 30 * 60
CANCEL_ALL_WINDOW_SEC = 5 * 60


def _to_market(ob: Dict[str, Any]) -> MarketInfo:
    return MarketInfo(
        market_id=int(ob["market_id"]),
        symbol=str(ob.get("symbol", "")),
        price_tick=10.0 ** -int(ob.get("supported_price_decimals", 0)),
        size_tick=10.0 ** -int(ob.get("supported_size_decimals", 0)),
    )


def _to_account(acc: Dict[str, Any]) -> AccountView:
    return AccountView(
        index=int(acc.get("index", acc.get("account_index", -1))),
        available_balance=str(acc.get("available_balance", "")),
        total_asset_value=str(acc.get("total_asset_value", "")),
        positions=[
            PositionView(
                market_id=int(p.get("market_id", -1)),
                position=str(p.get("position", "")),
                sign=int(p.get("sign", 1) or 1),
            )
            for p in acc.get("positions") or []
        ],
    )


@dataclass
class LighterConfig:
    base_url: str = "https://mainnet.zklighter.elliot.ai"
    timeout_sec: float = 30.0

    @staticmethod
    def from_settings(s) -> "LighterConfig":
        return LighterConfig(base_url=s.BASE_URL.rstrip("/"))


class LighterClient(MarketDirectory, AccountQuery, OrderSubmitter, OrderCanceler):
    """
    Hermetyzacja REST API Lightera na bazie requests.

    Odczyty (order booki, konto) nie wymagają podpisu; zapisy (zlecenia, anulowania)
    idą przez TxSigner. Brak automatycznych ponowień: kolejny tick strategii jest ponowieniem.
    """

    def __init__(
        self,
        cfg: Optional[LighterConfig] = None,
        signer: Optional[TxSigner] = None,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.cfg = cfg or LighterConfig()
        self.signer = signer
        self.session = session or requests.Session()
        self.log = logger or logging.getLogger(self.__class__.__name__)
        self._markets: Dict[int, MarketInfo] = {}
        self.log.info("LighterClient zainicjalizowany (base_url=%s, signer=%s)", self.cfg.base_url, signer is not None)

    # ---------- PUBLIC API: READ ----------

    def get_order_books(self) -> List[Dict[str, Any]]:
        payload = self._request("GET", "/api/v1/orderBooks")
        return list(payload.get("order_books") or [])

    def find_market(self, symbol: str) -> MarketInfo:
        """Szuka rynku po symbolu (bez rozróżniania wielkości liter); ticki z liczby miejsc dziesiętnych."""
        upper = symbol.upper()
        for info in self._load_markets().values():
            if info.symbol.upper() == upper:
                return info
        raise LookupError(f"symbol {symbol} not found")

    def fetch(self, account_id: int) -> List[AccountView]:
        payload = self._request("GET", "/api/v1/account", params={"by": "index", "value": str(account_id)})
        try:
            return [_to_account(acc) for acc in payload.get("accounts") or []]
        except (TypeError, ValueError, AttributeError) as e:
            raise TransportFailure(f"lighter api: malformed account payload: {e}") from e

    # ---------- PUBLIC API: WRITE ----------

    def submit(self, order: OrderRequest) -> str:
        """Składa post-only limit. Cena i ilość muszą być już zaokrąglone do ticków."""
        self._validate_order(order)
        market = self._market_ticks(order.market_id)
        req = {
            "MarketIndex": order.market_id,
            "ClientOrderIndex": order.client_order_index,
            "BaseAmount": round(order.size / market.size_tick),
            "Price": max(round(order.price / market.price_tick), 1),
            "IsAsk": 1 if order.side == Side.SELL else 0,
            "Type": ORDER_TYPE_LIMIT,
            "TimeInForce": TIF_POST_ONLY,
            "ReduceOnly": 1 if order.reduce_only else 0,
            "TriggerPrice": 0,
            "OrderExpiry": int((time.time() + ORDER_EXPIRY_SEC) * 1000),
        }
        tx_info = self._sign("create_order", self._ensure_signer().sign_create_order, req)
        try:
            return self.send_tx(TX_TYPE_CREATE_ORDER, tx_info)
        except (ExchangeRateLimitError, ExchangeNetworkError, ExchangeAuthError):
            raise
        except TransportFailure as e:
            raise ExchangeOrderRejected(f"Order rejected: {e}") from e

    def cancel_all(self) -> None:
        req = {
            "TimeInForce": CANCEL_ALL_IMMEDIATE,
            "Time": int((time.time() + CANCEL_ALL_WINDOW_SEC) * 1000),
        }
        tx_info = self._sign("cancel_all_orders", self._ensure_signer().sign_cancel_all_orders, req)
        self.send_tx(TX_TYPE_CANCEL_ALL_ORDERS, tx_info)

    def send_tx(self, tx_type: int, tx_info: str) -> str:
        payload = self._request("POST", "/api/v1/sendTx", data={"tx_type": str(tx_type), "tx_info": tx_info})
        return str(payload.get("tx_hash", ""))

    # ---------- HELPERS ----------

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.cfg.base_url}{path}"
        try:
            resp = self.session.request(method, url, timeout=self.cfg.timeout_sec, **kwargs)
        except requests.RequestException as e:
            raise ExchangeNetworkError(f"Network error: {e}") from e

        status = resp.status_code
        if status == 429:
            raise ExchangeRateLimitError(f"Rate limit: {path}")
        if status in (401, 403):
            raise ExchangeAuthError(f"Auth error: status={status}")

        try:
            payload = resp.json()
        except ValueError:
            payload = None
        if status >= 400 or not isinstance(payload, dict):
            snippet = (resp.text or "").strip()[:256]
            raise TransportFailure(f"lighter api: status={status} body={snippet}")

        code = payload.get("code")
        if code not in (None, 0, 200):
            raise TransportFailure(f"lighter api: code={code} status={status} message={payload.get('message', '')}")
        return payload

    def _ensure_signer(self) -> TxSigner:
        if self.signer is None:
            raise ExchangeAuthError("Brak TxSigner: ustaw TX_SIGNER w .env albo włącz DRY_RUN.")
        return self.signer

    def _sign(self, what: str, sign_fn, req: Dict[str, Any]) -> str:
        # signer jest zewnętrzny: każdy jego błąd to błąd transportu dla tego ticka
        try:
            return sign_fn(req)
        except TransportFailure:
            raise
        except Exception as e:
            self.log.error("Signer %s failed: %s", what, e)
            raise ExchangeAuthError(f"signer {what}: {e}") from e

    def _load_markets(self) -> Dict[int, MarketInfo]:
        markets = {}
        try:
            for ob in self.get_order_books():
                info = _to_market(ob)
                markets[info.market_id] = info
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise TransportFailure(f"lighter api: malformed order book list: {e}") from e
        self._markets = markets
        return markets

    def _market_ticks(self, market_id: int) -> MarketInfo:
        markets = self._markets if market_id in self._markets else self._load_markets()
        if market_id not in markets:
            raise ExchangeValidationError(f"nieznany market_id={market_id}")
        return markets[market_id]

    def _validate_order(self, order: OrderRequest) -> None:
        if order.size <= 0:
            raise ExchangeValidationError("size musi być > 0")
        if order.price <= 0:
            raise ExchangeValidationError("price musi być > 0")
        if order.side not in (Side.BUY, Side.SELL):
            raise ExchangeValidationError("side musi być 'buy' lub 'sell'")
