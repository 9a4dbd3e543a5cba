import math
from typing import Optional, Tuple

from loguru import logger

from lighter_mm.domain.dto import PricingParameters, Side
from lighter_mm.domain.errors import SizingFailure
from lighter_mm.domain.models import StrategyConfig

TICK_EPS = 1e-9  # tolerancja float przy dzieleniu przez tick


def tick_steps(value: float, tick: float) -> int:
    return math.floor(value / tick + TICK_EPS)


def round_price(price: float, tick: float) -> float:
    return max(tick_steps(price, tick), 1) * tick


def round_size(size: float, tick: float) -> float:
    steps = tick_steps(size, tick)
    if steps < 1:
        raise SizingFailure(f"order size {size:.10f} below minimum tick {tick}")
    return steps * tick


def target_price(
    mid: float,
    side: Side,
    params: Optional[PricingParameters],
    require_params: bool,
    spread: float,
) -> Tuple[float, bool]:
    if params is not None:
        if side == Side.BUY:
            return mid - params.delta_bid, True
        return mid + params.delta_ask, True

    if require_params:
        return 0.0, False

    # brak parametrów -> symetryczny statyczny spread
    if side == Side.BUY:
        return mid * (1 - spread), True
    return mid * (1 + spread), True


def target_size(
    side: Side,
    mid: float,
    position: float,
    available_capital: float,
    cfg: StrategyConfig,
    size_tick: float,
) -> float:
    if side == Side.SELL:
        if position <= 0:
            return 0.0
        value = position * mid
        if value < cfg.min_position_value_usd:
            logger.info(f"Wartość pozycji {value:.2f} < {cfg.min_position_value_usd:.2f}, pomijam sprzedaż")
            return 0.0
        return position

    if not cfg.use_dynamic_sizing:
        return cfg.base_amount
    if available_capital <= 0 or mid <= 0:
        logger.info(f"Brak dostępnego kapitału, używam stałej ilości {cfg.base_amount:.6f}")
        return cfg.base_amount

    usable = available_capital * (1 - cfg.safety_margin)
    order_capital = usable * cfg.capital_usage
    size = max(order_capital / mid, size_tick)
    logger.debug(f"Dynamiczny rozmiar: kapitał {order_capital:.2f} -> {size:.6f} jednostek")
    return size
