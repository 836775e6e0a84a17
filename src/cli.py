"""Operator CLI.

    python -m src.cli run                         # listener + periodic sync, no HTTP
    python -m src.cli sync-assets                 # one registry sync, prints the report
    python -m src.cli set-price MINT 12.50        # price in USDC per share
    python -m src.cli rebuild-position WALLET MINT
    python -m src.cli dead-letters --limit 50    # recent events that kept failing
"""

import argparse
import asyncio
import contextlib
import dataclasses
import json
import logging
import signal
from decimal import Decimal, InvalidOperation

from config.settings import settings
from src.rwa_common.database import async_session_factory, dispose_engines
from src.rwa_common.errors import AppError
from src.rwa_common.micro_units import decimal_to_micro
from src.rwa_common.pubkey import require_pubkey
from src.rwa_indexer.application.runtime import IndexerRuntime
from src.rwa_indexer.infrastructure.dead_letter import DeadLetterRepository

logger = logging.getLogger("rwa.cli")


async def _run() -> None:
    runtime = IndexerRuntime.build(settings, async_session_factory)
    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def _on_stop() -> None:
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, _on_stop)

    await runtime.start()
    logger.info("Indexer running; Ctrl-C to stop")
    try:
        await stop_event.wait()
    finally:
        await runtime.stop()


async def _sync_assets() -> None:
    runtime = IndexerRuntime.build(settings, async_session_factory)
    await runtime.chain.open()
    try:
        report = await runtime.sync_service.sync_assets()
    finally:
        await runtime.chain.close()
    print(json.dumps(dataclasses.asdict(report), indent=2))


async def _set_price(mint: str, price_usdc: int) -> None:
    runtime = IndexerRuntime.build(settings, async_session_factory)
    asset = await runtime.sync_service.update_asset_price(mint, price_usdc)
    print(f"{asset.mint}: price_usdc={asset.price_usdc}")


async def _rebuild_position(wallet: str, mint: str) -> None:
    runtime = IndexerRuntime.build(settings, async_session_factory)
    shares = await runtime.processor.rebuild_position(wallet, mint)
    print(f"{wallet} {mint}: shares={shares}")


async def _dead_letters(limit: int) -> None:
    async with async_session_factory() as db:
        rows = await DeadLetterRepository().list_recent(db, limit)
    print(json.dumps(rows, indent=2, default=str))


async def main_async(args: argparse.Namespace) -> None:
    try:
        if args.command == "run":
            await _run()
        elif args.command == "sync-assets":
            await _sync_assets()
        elif args.command == "set-price":
            await _set_price(args.mint, args.price_micro)
        elif args.command == "rebuild-position":
            await _rebuild_position(args.wallet, args.mint)
        elif args.command == "dead-letters":
            await _dead_letters(args.limit)
    finally:
        await dispose_engines()


def _usdc_to_micro(value: str) -> int:
    try:
        amount = Decimal(value)
    except InvalidOperation as exc:
        raise argparse.ArgumentTypeError(f"not a decimal amount: {value}") from exc
    if amount < 0:
        raise argparse.ArgumentTypeError("price must be non-negative")
    return decimal_to_micro(amount)


def _pubkey(field: str):  # type: ignore[no-untyped-def]
    def parse(value: str) -> str:
        try:
            return require_pubkey(value, field)
        except AppError as exc:
            raise argparse.ArgumentTypeError(exc.message) from exc

    return parse


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="python -m src.cli", description="RWA indexer tools")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("run", help="stream program logs and sync assets until interrupted")
    sub.add_parser("sync-assets", help="reconcile registry accounts once")

    set_price = sub.add_parser("set-price", help="set an asset's price (USDC per share)")
    set_price.add_argument("mint", type=_pubkey("mint"))
    set_price.add_argument("price_micro", metavar="PRICE_USDC", type=_usdc_to_micro)

    rebuild = sub.add_parser("rebuild-position", help="recompute a position from trades")
    rebuild.add_argument("wallet", type=_pubkey("wallet"))
    rebuild.add_argument("mint", type=_pubkey("mint"))

    dead = sub.add_parser("dead-letters", help="show events that failed after retries")
    dead.add_argument("--limit", type=int, default=20)
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        asyncio.run(main_async(args))
    except KeyboardInterrupt:
        pass
    except AppError as exc:
        raise SystemExit(f"error {exc.code}: {exc.message}") from exc


if __name__ == "__main__":
    main()
