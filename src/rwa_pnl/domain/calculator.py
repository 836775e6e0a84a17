"""Weighted-average cost-basis P&L: pure functions over the trade ledger.

A sell removes a proportional share of the running cost basis (not FIFO/LIFO
lots). All running sums are Decimal; micro-units are converted on entry.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal

from src.rwa_common.datetime_utils import day_key
from src.rwa_common.enums import PriceMark, TradeSide
from src.rwa_common.micro_units import micro_to_decimal
from src.rwa_pnl.domain.models import (
    ZERO,
    AssetPerformance,
    OpenPosition,
    PnLPoint,
    PortfolioPnL,
    PositionPnL,
    PricePoint,
    TradeRecord,
)

logger = logging.getLogger(__name__)

_HUNDRED = Decimal(100)
_ONE = Decimal(1)


def percent(numerator: Decimal, denominator: Decimal) -> Decimal:
    """numerator / denominator * 100, or 0 when the denominator is 0."""
    if denominator == 0:
        return ZERO
    return numerator / denominator * _HUNDRED


@dataclass
class CostBasisBook:
    """Running weighted-average position for one mint."""

    mint: str = ""
    total_invested: Decimal = ZERO
    total_shares: int = 0
    last_price: Decimal = ZERO     # last per-share trade price seen

    @property
    def avg_cost(self) -> Decimal:
        if self.total_shares <= 0:
            return ZERO
        return self.total_invested / Decimal(self.total_shares)

    def apply(self, trade: TradeRecord) -> None:
        consideration = micro_to_decimal(trade.price_usdc)
        if trade.amount > 0:
            self.last_price = consideration / Decimal(trade.amount)

        if trade.side == TradeSide.BUY.value:
            self.total_invested += consideration
            self.total_shares += trade.amount
            return

        if self.total_shares <= 0:
            logger.info(
                "Sell with no running shares: mint=%s amount=%d; cost basis unchanged",
                trade.mint,
                trade.amount,
            )
            return
        ratio = min(Decimal(trade.amount) / Decimal(self.total_shares), _ONE)
        self.total_invested -= self.total_invested * ratio
        self.total_shares = max(self.total_shares - trade.amount, 0)

    def unrealized(self, price: Decimal) -> Decimal:
        return Decimal(self.total_shares) * price - self.total_invested


def walk_trades(trades: Iterable[TradeRecord], mint: str = "") -> CostBasisBook:
    book = CostBasisBook(mint=mint)
    for trade in trades:
        book.apply(trade)
    return book


def position_pnl(position: OpenPosition, trades: Iterable[TradeRecord]) -> PositionPnL:
    """P&L of a live position, re-based to its authoritative share count."""
    if position.shares <= 0:
        return PositionPnL(mint=position.mint)
    book = walk_trades(trades, position.mint)
    shares = Decimal(position.shares)
    invested = shares * book.avg_cost
    value = shares * micro_to_decimal(position.price_usdc)
    pnl = value - invested
    return PositionPnL(
        mint=position.mint,
        shares=position.shares,
        avg_cost_basis=book.avg_cost,
        total_invested=invested,
        current_value=value,
        profit_loss=pnl,
        profit_loss_percent=percent(pnl, invested),
    )


def portfolio_pnl(wallet: str, positions: list[PositionPnL]) -> PortfolioPnL:
    invested = sum((p.total_invested for p in positions), ZERO)
    value = sum((p.current_value for p in positions), ZERO)
    pnl = value - invested
    return PortfolioPnL(
        wallet=wallet,
        total_invested=invested,
        total_current_value=value,
        total_profit_loss=pnl,
        total_profit_loss_percent=percent(pnl, invested),
        positions=positions,
    )


def historical_pnl(
    trades: Iterable[TradeRecord],
    current_prices: Mapping[str, int],
    mark: PriceMark = PriceMark.CURRENT,
) -> list[PnLPoint]:
    """One point per trade day: the sum of per-trade marks taken that day.

    After each trade, that trade's mint book is marked and its unrealized P&L
    is added to the trade's day. `current_prices` holds micro-USDC per share
    by mint. With PriceMark.LAST_TRADE a book is marked at its own last trade
    price instead.
    """
    books: dict[str, CostBasisBook] = {}
    by_day: dict = defaultdict(lambda: ZERO)
    for trade in trades:
        book = books.get(trade.mint)
        if book is None:
            book = books[trade.mint] = CostBasisBook(mint=trade.mint)
        book.apply(trade)
        if mark is PriceMark.LAST_TRADE:
            price = book.last_price
        else:
            price = micro_to_decimal(current_prices.get(trade.mint, 0))
        by_day[day_key(trade.created_at)] += book.unrealized(price)
    return [PnLPoint(date=day, pnl=total) for day, total in sorted(by_day.items())]


def asset_performance(mint: str, days: int, trades: Iterable[TradeRecord]) -> AssetPerformance:
    """Daily average per-share price and first-to-last change."""
    sums: dict = defaultdict(lambda: [ZERO, 0])
    for trade in trades:
        if trade.amount <= 0:
            continue
        bucket = sums[day_key(trade.created_at)]
        bucket[0] += micro_to_decimal(trade.price_usdc) / Decimal(trade.amount)
        bucket[1] += 1

    points = [
        PricePoint(date=day, price=total / Decimal(count), trades=count)
        for day, (total, count) in sorted(sums.items())
    ]
    if not points:
        return AssetPerformance(mint=mint, days=days)
    first, last = points[0].price, points[-1].price
    return AssetPerformance(
        mint=mint,
        days=days,
        points=points,
        first_price=first,
        last_price=last,
        performance_percent=percent(last - first, first),
    )
