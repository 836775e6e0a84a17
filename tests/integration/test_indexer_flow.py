"""End-to-end: events applied by the processor, read back over HTTP.

Pre-condition: PostgreSQL and Redis running, `alembic upgrade head` applied.

Uses the session-scoped client fixture from tests/integration/conftest.py.
Every run uses fresh random pubkeys, so reruns never collide.
"""

import os
import struct
from unittest.mock import AsyncMock, MagicMock

import base58
import pytest
from httpx import AsyncClient

from src.rwa_assets.application.sync_service import AssetSyncService
from src.rwa_chain.domain.models import ProgramAccount, ProgramAccountsSnapshot
from src.rwa_common.database import async_session_factory
from src.rwa_indexer.application.processor import EventProcessor
from src.rwa_indexer.domain.events import (
    AssetCreated,
    DividendClaimed,
    DividendClosed,
    DividendOpened,
    SharesBought,
    SharesSold,
)
from src.rwa_indexer.domain.schemas import ASSET_ACCOUNT_DISCRIMINATOR

pytestmark = pytest.mark.asyncio(loop_scope="session")


def _key() -> str:
    return base58.b58encode(os.urandom(32)).decode()


def _sig() -> str:
    return base58.b58encode(os.urandom(64)).decode()


WALLET, MINT, ASSET, ISSUER, DIVIDEND, CLAIM_PDA, USDC_MINT = (_key() for _ in range(7))
BUY_SIG, SELL_SIG = _sig(), _sig()

processor = EventProcessor(async_session_factory)


async def _data(client: AsyncClient, path: str, **params: object) -> dict:
    resp = await client.get(path, params=params)
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["code"] == 0
    return body["data"]


class TestIndexerFlow:
    async def test_01_asset_created(self, client: AsyncClient) -> None:
        await processor.process(
            AssetCreated(ASSET, ISSUER, MINT, 10_000_000, 1_000, 1_000), _sig(), 100
        )
        data = await _data(client, f"/api/v1/assets/{MINT}")
        assert data["address"] == ASSET
        assert data["free_float"] == 1_000
        assert data["circulating"] == 0

    async def test_02_buy_is_idempotent(self, client: AsyncClient) -> None:
        event = SharesBought(WALLET, MINT, 100, 1_000_000_000)
        await processor.process(event, BUY_SIG, 101, 1_700_000_000)
        await processor.process(event, BUY_SIG, 101, 1_700_000_000)

        trades = await _data(client, "/api/v1/trades", mint=MINT)
        assert trades["total"] == 1
        assert trades["items"][0]["side"] == "buy"
        asset = await _data(client, f"/api/v1/assets/{MINT}")
        assert asset["free_float"] == 900

    async def test_03_partial_sell(self, client: AsyncClient) -> None:
        await processor.process(SharesSold(WALLET, MINT, 50, 555_000_000), SELL_SIG, 102, 1_700_000_100)
        asset = await _data(client, f"/api/v1/assets/{MINT}")
        assert asset["free_float"] == 950
        assert asset["last_slot"] == 102

    async def test_04_portfolio_pnl(self, client: AsyncClient) -> None:
        sync = AssetSyncService(MagicMock(), async_session_factory, "Registry")
        await sync.update_asset_price(MINT, 12_000_000)

        pnl = await _data(client, "/api/v1/pnl/portfolio", wallet=WALLET)
        assert pnl["total_invested"] == "500.000000"
        assert pnl["total_current_value"] == "600.000000"
        assert pnl["total_profit_loss"] == "100.000000"
        assert pnl["total_profit_loss_percent"] == "20.00"

        portfolio = await _data(client, f"/api/v1/portfolio/{WALLET}")
        assert portfolio["total"] == 1
        assert portfolio["items"][0]["shares"] == 50

    async def test_05_dividend_lifecycle(self, client: AsyncClient) -> None:
        with_pda = DividendClaimed(DIVIDEND, WALLET, 5_000_000, claim=CLAIM_PDA)
        # delivered ahead of its dividend: skipped, nothing written
        await processor.process(with_pda, _sig(), 103)
        early = await _data(client, "/api/v1/claims", wallet=WALLET)
        assert early["items"] == []

        await processor.process(DividendOpened(DIVIDEND, ASSET, 5_000_000, 50), _sig(), 104)
        # redelivered from notification logs (no accounts), then from the fetched transaction
        await processor.process(DividendClaimed(DIVIDEND, WALLET, 5_000_000), _sig(), 105)
        await processor.process(with_pda, _sig(), 105)
        await processor.process(DividendClosed(DIVIDEND, 0), _sig(), 106)

        dividends = await _data(client, "/api/v1/dividends", mint=MINT)
        assert dividends["total"] == 1
        d = dividends["items"][0]
        assert d["claimed_amount"] == 5_000_000
        assert d["claim_count"] == 1
        assert d["is_closed"] is True

        claims = await _data(client, "/api/v1/claims", dividend=DIVIDEND)
        assert [(c["wallet"], c["pda"]) for c in claims["items"]] == [(WALLET, CLAIM_PDA)]

    async def test_06_history(self, client: AsyncClient) -> None:
        history = await _data(client, "/api/v1/history", wallet=WALLET)
        kinds = sorted(item["type"] for item in history["items"])
        assert kinds == ["claim", "dividend", "trade", "trade"]

        trades_only = await _data(client, "/api/v1/history", wallet=WALLET, type="trades")
        assert {item["type"] for item in trades_only["items"]} == {"trade"}

    async def test_07_rebuild_position(self) -> None:
        assert await processor.rebuild_position(WALLET, MINT) == 50

    async def test_08_unknown_dividend_claims(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/claims", params={"dividend": _key()})
        assert resp.status_code == 404
        assert resp.json()["code"] == 5001


def _asset_account_data(mint: str, price_usdc: int, supply: int) -> bytes:
    return (
        ASSET_ACCOUNT_DISCRIMINATOR
        + base58.b58decode(ISSUER)
        + base58.b58decode(mint)
        + base58.b58decode(USDC_MINT)
        + struct.pack("<BQQQ", 6, price_usdc, supply, supply)
        + bytes(3)
    )


class TestAssetResync:
    async def test_09_identical_resync_changes_nothing(self, client: AsyncClient) -> None:
        mint, address = _key(), _key()
        chain = MagicMock()
        chain.get_program_accounts = AsyncMock(
            return_value=ProgramAccountsSnapshot(
                slot=300,
                accounts=[ProgramAccount(address, _asset_account_data(mint, 7_500_000, 2_000))],
            )
        )
        sync = AssetSyncService(chain, async_session_factory, "Registry")

        first = await sync.sync_assets()
        before = await _data(client, f"/api/v1/assets/{mint}")
        second = await sync.sync_assets()
        after = await _data(client, f"/api/v1/assets/{mint}")

        assert (first.inserted, first.unchanged) == (1, 0)
        assert (second.inserted, second.updated, second.unchanged) == (0, 0, 1)
        assert before["price_usdc"] == 7_500_000
        assert after == before
