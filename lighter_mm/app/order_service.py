import time
from lighter_mm.domain.dto import MarketInfo, OrderRequest, Side
from lighter_mm.app.quote_service import round_price, round_size


def next_client_order_index() -> int:
    # unikalny indeks zlecenia po stronie klienta (giełda wymaga int64)
    return time.time_ns() % 1_000_000_000_000


def make_order(market: MarketInfo, side: Side, price: float, size: float, reduce_only: bool) -> OrderRequest:
    """Zaokrągla cenę i ilość w dół do ticków rynku. SizingFailure gdy ilość < 1 tick."""
    return OrderRequest(
        client_order_index=next_client_order_index(),
        market_id=market.market_id,
        side=side,
        price=round_price(price, market.price_tick),
        size=round_size(size, market.size_tick),
        reduce_only=reduce_only,
    )
