from dataclasses import dataclass
from time import time
from typing import Dict, List
from loguru import logger
from lighter_mm.domain.dto import AccountView, OrderRequest, PositionView, Side
from lighter_mm.domain.interfaces import AccountQuery, OrderCanceler, OrderSubmitter


@dataclass
class DryRunFill:
    client_order_index: int
    market_id: int
    side: Side
    size: float
    price: float
    ts: int


class DryRunExchange(OrderSubmitter, OrderCanceler, AccountQuery):
    """Prosty symulator: trzyma kapitał i pozycje w pamięci, filluje od razu po cenie limitu."""

    def __init__(self, account_index: int, capital: float = 1000.0):
        self.account_index = account_index
        self.capital = capital
        self.positions: Dict[int, float] = {}
        self.fills: List[DryRunFill] = []
        self.cancel_calls = 0

    def submit(self, order: OrderRequest) -> str:
        held = self.positions.get(order.market_id, 0.0)
        size = order.size
        if order.reduce_only and order.side == Side.SELL:
            size = min(size, max(held, 0.0))

        if order.side == Side.BUY:
            self.capital -= size * order.price
            self.positions[order.market_id] = held + size
        else:
            self.capital += size * order.price
            self.positions[order.market_id] = held - size

        self.fills.append(
            DryRunFill(order.client_order_index, order.market_id, order.side, size, order.price, int(time() * 1000))
        )
        logger.info(f"[DRY_RUN] {order.side.value.upper()} {size:.6f} @ {order.price:.6f} (id={order.client_order_index})")
        return f"SIM-{order.client_order_index}"

    def cancel_all(self) -> None:
        # zlecenia fillują się od razu, więc nie ma czego anulować
        self.cancel_calls += 1

    def fetch(self, account_id: int) -> List[AccountView]:
        return [
            AccountView(
                index=self.account_index,
                available_balance=f"{self.capital:.6f}",
                total_asset_value=f"{self.capital:.6f}",
                positions=[
                    PositionView(market_id=mid, position=f"{abs(qty):.8f}", sign=-1 if qty < 0 else 1)
                    for mid, qty in self.positions.items()
                ],
            )
        ]
