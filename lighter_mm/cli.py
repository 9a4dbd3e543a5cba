import argparse
import signal
import sys
import threading
from loguru import logger
from lighter_mm.config import settings
from lighter_mm.infra.logging import setup_logging
from lighter_mm.infra.dry_run import DryRunExchange
from lighter_mm.infra.signer import load_signer
from lighter_mm.backend.broker.lighter_client import LighterClient, LighterConfig
from lighter_mm.backend.data.market_data import LighterOrderBookStream
from lighter_mm.app.account_service import AccountStateCache
from lighter_mm.app.orchestration import MarketMakerOrchestrator
from lighter_mm.app.params_service import ParameterStore, file_sources
from lighter_mm.app.price_feed import MidPriceFeed
from lighter_mm.app.quote_service import round_price, target_price, target_size
from lighter_mm.domain.dto import Side
from lighter_mm.domain.errors import EngineError, StartupError


def build_client() -> LighterClient:
    signer = None
    if settings.TX_SIGNER:
        signer = load_signer(
            settings.TX_SIGNER,
            base_url=settings.BASE_URL,
            private_key=settings.API_KEY_PRIVATE_KEY,
            account_index=settings.ACCOUNT_INDEX,
            api_key_index=settings.API_KEY_INDEX,
        )
    return LighterClient(LighterConfig.from_settings(settings), signer=signer)


def build_orchestrator(stop: threading.Event) -> MarketMakerOrchestrator:
    cfg = settings.strategy_config()
    client = build_client()
    if settings.DRY_RUN:
        paper = DryRunExchange(settings.ACCOUNT_INDEX, capital=settings.DRY_RUN_CAPITAL)
        submitter, canceler, account_query = paper, paper, paper
    else:
        if client.signer is None:
            raise StartupError("DRY_RUN=false wymaga TX_SIGNER")
        submitter, canceler, account_query = client, client, client

    return MarketMakerOrchestrator(
        cfg,
        directory=client,
        market_data=LighterOrderBookStream(settings.ws_url()),
        submitter=submitter,
        canceler=canceler,
        account_query=account_query,
        param_sources=file_sources(cfg.param_candidates),
        stop=stop,
    )


def cmd_run() -> int:
    stop = threading.Event()

    def _on_signal(signum, frame):
        logger.info(f"Sygnał {signum}, zatrzymuję...")
        stop.set()

    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)

    try:
        build_orchestrator(stop).run()
    except StartupError as e:
        logger.error(f"Start nieudany: {e}")
        return 1
    return 130 if stop.is_set() else 0


def cmd_quote(timeout: float) -> int:
    """Jednorazowa wycena obu stron bez składania zleceń."""
    cfg = settings.strategy_config()
    client = build_client()
    try:
        market = client.find_market(cfg.market_symbol)
        snap = AccountStateCache(client, market.market_id).refresh(cfg.account_index)
    except (EngineError, LookupError) as e:
        logger.error(f"Błąd: {e}")
        return 1

    feed = MidPriceFeed()
    unsubscribe = LighterOrderBookStream(settings.ws_url()).subscribe(market.market_id, feed.observe)
    try:
        if not feed.wait_for_first(timeout, threading.Event()):
            logger.error("Brak ceny mid w zadanym czasie")
            return 1
    finally:
        unsubscribe()

    mid, _ = feed.read()
    params = ParameterStore(file_sources(cfg.param_candidates), cfg.params_refresh_sec).load()

    print(f"\n=== {market.symbol} (id={market.market_id}) ===")
    print(f"Mid          : {mid:.6f}")
    print(f"Available    : {snap.available_capital:.2f}")
    print(f"Position     : {snap.position_size:.6f}")
    print(f"Params       : {'avellaneda' if params else 'static spread'}")
    for side in (Side.BUY, Side.SELL):
        price, ok = target_price(mid, side, params, cfg.require_params, cfg.spread)
        if not ok:
            print(f"{side.value.upper():<4} : brak parametrów (REQUIRE_PARAMS)")
            continue
        size = target_size(side, mid, snap.position_size, snap.available_capital, cfg, market.size_tick)
        print(f"{side.value.upper():<4} : price={round_price(price, market.price_tick):.6f} size={size:.6f}")
    print()
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="lighter-mm")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    sub = parser.add_subparsers(dest="cmd", required=True)

    sub.add_parser("run", help="Pętla market-makera (DRY_RUN wg .env)")

    q = sub.add_parser("quote", help="Wycena bez składania zleceń")
    q.add_argument("--timeout", type=float, default=30.0, help="Ile sekund czekać na cenę mid")

    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    if args.cmd == "run":
        return cmd_run()
    return cmd_quote(args.timeout)


if __name__ == "__main__":
    sys.exit(main())
