"""PnLService: read-only P&L over the trade ledger.

Loads rows through the repository and hands them to the pure calculator.
"""

from collections import defaultdict

from sqlalchemy.ext.asyncio import AsyncSession

from src.rwa_common.datetime_utils import window_start
from src.rwa_common.enums import PriceMark
from src.rwa_common.errors import AssetNotFoundError
from src.rwa_pnl.domain import calculator
from src.rwa_pnl.domain.models import (
    AssetPerformance,
    PnLPoint,
    PortfolioItem,
    PortfolioPnL,
    PositionPnL,
    TradeRecord,
)
from src.rwa_pnl.domain.repository import PnLRepositoryProtocol
from src.rwa_pnl.infrastructure.persistence import PnLRepository


class PnLService:
    def __init__(self, repo: PnLRepositoryProtocol | None = None) -> None:
        self._repo: PnLRepositoryProtocol = repo or PnLRepository()

    async def calculate_position_pnl(
        self, db: AsyncSession, wallet: str, mint: str
    ) -> PositionPnL:
        position = await self._repo.get_open_position(db, wallet, mint)
        if position is None:
            return PositionPnL(mint=mint)
        trades = await self._repo.list_trades(db, wallet=wallet, mint=mint)
        return calculator.position_pnl(position, trades)

    async def _positions_with_pnl(
        self, db: AsyncSession, wallet: str
    ) -> list[tuple[PortfolioItem, PositionPnL]]:
        positions = await self._repo.list_open_positions(db, wallet)
        if not positions:
            return []
        by_mint: dict[str, list[TradeRecord]] = defaultdict(list)
        for trade in await self._repo.list_trades(db, wallet=wallet):
            by_mint[trade.mint].append(trade)
        out = []
        for position in positions:
            pnl = calculator.position_pnl(position, by_mint.get(position.mint, []))
            item = PortfolioItem(
                mint=position.mint,
                ticker=position.ticker,
                shares=position.shares,
                price_usdc=position.price_usdc,
                pnl=pnl,
            )
            out.append((item, pnl))
        return out

    async def calculate_portfolio_pnl(self, db: AsyncSession, wallet: str) -> PortfolioPnL:
        rows = await self._positions_with_pnl(db, wallet)
        return calculator.portfolio_pnl(wallet, [pnl for _, pnl in rows])

    async def get_portfolio(self, db: AsyncSession, wallet: str) -> list[PortfolioItem]:
        return [item for item, _ in await self._positions_with_pnl(db, wallet)]

    async def get_historical_pnl(
        self,
        db: AsyncSession,
        wallet: str,
        days: int,
        mark: PriceMark = PriceMark.CURRENT,
    ) -> list[PnLPoint]:
        trades = await self._repo.list_trades(db, wallet=wallet, since=window_start(days))
        if not trades:
            return []
        prices: dict[str, int] = {}
        if mark is PriceMark.CURRENT:
            prices = await self._repo.get_prices(db, sorted({t.mint for t in trades}))
        return calculator.historical_pnl(trades, prices, mark)

    async def get_asset_performance(
        self, db: AsyncSession, mint: str, days: int
    ) -> AssetPerformance:
        if not await self._repo.asset_exists(db, mint):
            raise AssetNotFoundError(mint)
        trades = await self._repo.list_trades(db, mint=mint, since=window_start(days))
        return calculator.asset_performance(mint, days, trades)
