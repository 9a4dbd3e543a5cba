from pathlib import Path
from typing import List
from urllib.parse import urlparse

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from lighter_mm.domain.models import StrategyConfig


class Settings(BaseSettings):
    BASE_URL: str = "https://mainnet.zklighter.elliot.ai"
    WS_URL: str = ""
    ACCOUNT_INDEX: int = 0
    API_KEY_INDEX: int = 0
    API_KEY_PRIVATE_KEY: str | None = None
    TX_SIGNER: str | None = None  # "pakiet.modul:fabryka"


    DRY_RUN: bool = True
    DRY_RUN_CAPITAL: float = 1000.0


    MARKET_SYMBOL: str = "PAXG"
    SPREAD: float = 0.035 / 100.0
    BASE_AMOUNT: float = 0.047
    USE_DYNAMIC_SIZING: bool = True
    CAPITAL_USAGE_PERCENT: float = 0.99
    SAFETY_MARGIN_PERCENT: float = 0.01
    MIN_POSITION_VALUE_USD: float = 15.0


    ORDER_TIMEOUT: float = 90.0
    ACCOUNT_REFRESH_INTERVAL: float = 15.0
    AVELLANEDA_REFRESH_INTERVAL: float = 15 * 60.0
    TICK_INTERVAL: float = 3.0


    PARAMS_DIR: str = "params"
    REQUIRE_PARAMS: bool = False
    CLOSE_LONG_ON_STARTUP: bool = False


    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


    @field_validator("SPREAD", "CAPITAL_USAGE_PERCENT", "SAFETY_MARGIN_PERCENT")
    @classmethod
    def _fraction(cls, v: float) -> float:
        if not 0 <= v < 1:
            raise ValueError("wartość procentowa musi być w przedziale [0, 1)")
        return v

    @field_validator("ORDER_TIMEOUT", "ACCOUNT_REFRESH_INTERVAL", "AVELLANEDA_REFRESH_INTERVAL", "TICK_INTERVAL")
    @classmethod
    def _positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("interwał musi być > 0")
        return v

    @field_validator("MARKET_SYMBOL")
    @classmethod
    def _symbol(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("MARKET_SYMBOL nie może być pusty")
        return v.strip()

    def ws_url(self) -> str:
        if self.WS_URL:
            return self.WS_URL
        host = urlparse(self.BASE_URL).netloc or self.BASE_URL
        return f"wss://{host}/stream"

    def param_candidates(self) -> List[str]:
        name = f"avellaneda_parameters_{self.MARKET_SYMBOL}.json"
        return [
            str(Path(self.PARAMS_DIR) / name),
            str(Path("params") / name),
            name,
            str(Path("TRADER") / name),
        ]

    def strategy_config(self) -> StrategyConfig:
        return StrategyConfig(
            account_index=self.ACCOUNT_INDEX,
            market_symbol=self.MARKET_SYMBOL,
            spread=self.SPREAD,
            base_amount=self.BASE_AMOUNT,
            use_dynamic_sizing=self.USE_DYNAMIC_SIZING,
            capital_usage=self.CAPITAL_USAGE_PERCENT,
            safety_margin=self.SAFETY_MARGIN_PERCENT,
            order_timeout_sec=self.ORDER_TIMEOUT,
            params_refresh_sec=self.AVELLANEDA_REFRESH_INTERVAL,
            require_params=self.REQUIRE_PARAMS,
            close_long_on_startup=self.CLOSE_LONG_ON_STARTUP,
            account_refresh_sec=self.ACCOUNT_REFRESH_INTERVAL,
            min_position_value_usd=self.MIN_POSITION_VALUE_USD,
            tick_interval_sec=self.TICK_INTERVAL,
            param_candidates=self.param_candidates(),
        )


settings = Settings()
