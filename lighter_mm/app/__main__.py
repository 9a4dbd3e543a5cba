# lighter_mm/app/__main__.py
from __future__ import annotations

import argparse
import logging
import sys

from lighter_mm.backend.broker.lighter_client import LighterClient, LighterConfig
from lighter_mm.config import settings
from lighter_mm.domain.errors import TransportFailure
from lighter_mm.infra.signer import load_signer


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="lighter-app",
        description="Runner do testowania warstwy giełdy (Lighter REST).",
    )
    p.add_argument(
        "action",
        choices=["markets", "account", "cancel"],
        help="Co zrobić: markets (lista rynków), account (saldo+pozycje), cancel (anuluj wszystkie zlecenia).",
    )
    p.add_argument("--symbol", default=None, help="Filtr symbolu dla 'markets'.")
    p.add_argument("--account", type=int, default=None, help="Indeks konta (domyślnie ACCOUNT_INDEX z .env).")
    p.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Poziom logowania (domyślnie INFO).",
    )
    return p

def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    signer = None
    if args.action == "cancel":
        if settings.DRY_RUN:
            print("[DRY_RUN] cancel_all() - symulacja, nic nie wysyłam.")
            return 0
        if not settings.TX_SIGNER:
            logging.getLogger("runner").error("Brak TX_SIGNER w .env")
            return 1
        signer = load_signer(
            settings.TX_SIGNER,
            base_url=settings.BASE_URL,
            private_key=settings.API_KEY_PRIVATE_KEY,
            account_index=settings.ACCOUNT_INDEX,
            api_key_index=settings.API_KEY_INDEX,
        )

    client = LighterClient(LighterConfig.from_settings(settings), signer=signer)
    account_index = settings.ACCOUNT_INDEX if args.account is None else args.account

    try:
        if args.action == "markets":
            books = client.get_order_books()
            print("\n=== MARKETS ===")
            for ob in books:
                if args.symbol and str(ob.get("symbol", "")).upper() != args.symbol.upper():
                    continue
                print(
                    f"{ob.get('symbol', '?'):>8}  id={ob.get('market_id'):<4}  "
                    f"price_dec={ob.get('supported_price_decimals')}  size_dec={ob.get('supported_size_decimals')}"
                )
            print()
            return 0

        if args.action == "account":
            accounts = client.fetch(account_index)
            print("\n=== ACCOUNT ===")
            if not accounts:
                print("(brak)")
            for acc in accounts:
                print(f"Index        : {acc.index}")
                print(f"Available    : {acc.available_balance}")
                print(f"Total value  : {acc.total_asset_value}")
                for pos in acc.positions:
                    print(f"  market={pos.market_id:<4} position={pos.position} sign={pos.sign}")
            print()
            return 0

        if args.action == "cancel":
            client.cancel_all()
            print("\n=== CANCEL ALL ===\nwysłano")
            print()
            return 0

        print("Nieznana akcja.")
        return 2

    except TransportFailure as e:
        logging.getLogger("runner").error("Błąd: %s", e)
        return 1
    except KeyboardInterrupt:
        print("\nPrzerwano.")
        return 130

if __name__ == "__main__":
    sys.exit(main())
