"""Pydantic schemas for P&L responses.

Decimals are serialized as strings: money to 6 places (USDC precision),
percentages to 2.
"""

from decimal import ROUND_HALF_EVEN, Decimal

from pydantic import BaseModel

from src.rwa_common.micro_units import micro_to_display
from src.rwa_pnl.domain.models import (
    AssetPerformance,
    PnLPoint,
    PortfolioItem,
    PortfolioPnL,
    PositionPnL,
)

_MONEY = Decimal("0.000001")
_PCT = Decimal("0.01")


def money(value: Decimal) -> str:
    return str(value.quantize(_MONEY, rounding=ROUND_HALF_EVEN))


def pct(value: Decimal) -> str:
    return str(value.quantize(_PCT, rounding=ROUND_HALF_EVEN))


class PositionPnLOut(BaseModel):
    mint: str
    shares: int
    avg_cost_basis: str
    total_invested: str
    current_value: str
    profit_loss: str
    profit_loss_percent: str

    @classmethod
    def from_domain(cls, p: PositionPnL) -> "PositionPnLOut":
        return cls(
            mint=p.mint,
            shares=p.shares,
            avg_cost_basis=money(p.avg_cost_basis),
            total_invested=money(p.total_invested),
            current_value=money(p.current_value),
            profit_loss=money(p.profit_loss),
            profit_loss_percent=pct(p.profit_loss_percent),
        )


class PortfolioPnLOut(BaseModel):
    wallet: str
    total_invested: str
    total_current_value: str
    total_profit_loss: str
    total_profit_loss_percent: str
    positions: list[PositionPnLOut]

    @classmethod
    def from_domain(cls, p: PortfolioPnL) -> "PortfolioPnLOut":
        return cls(
            wallet=p.wallet,
            total_invested=money(p.total_invested),
            total_current_value=money(p.total_current_value),
            total_profit_loss=money(p.total_profit_loss),
            total_profit_loss_percent=pct(p.total_profit_loss_percent),
            positions=[PositionPnLOut.from_domain(x) for x in p.positions],
        )


class PnLPointOut(BaseModel):
    date: str
    pnl: str


class PnLHistoryOut(BaseModel):
    wallet: str
    days: int
    mark: str
    points: list[PnLPointOut]

    @classmethod
    def build(cls, wallet: str, days: int, mark: str, points: list[PnLPoint]) -> "PnLHistoryOut":
        return cls(
            wallet=wallet,
            days=days,
            mark=mark,
            points=[PnLPointOut(date=p.date.isoformat(), pnl=money(p.pnl)) for p in points],
        )


class PricePointOut(BaseModel):
    date: str
    price: str
    trades: int


class AssetPerformanceOut(BaseModel):
    mint: str
    days: int
    points: list[PricePointOut]
    first_price: str
    last_price: str
    performance_percent: str

    @classmethod
    def from_domain(cls, a: AssetPerformance) -> "AssetPerformanceOut":
        return cls(
            mint=a.mint,
            days=a.days,
            points=[
                PricePointOut(date=p.date.isoformat(), price=money(p.price), trades=p.trades)
                for p in a.points
            ],
            first_price=money(a.first_price),
            last_price=money(a.last_price),
            performance_percent=pct(a.performance_percent),
        )


class PortfolioItemOut(BaseModel):
    mint: str
    ticker: str | None
    shares: int
    price_usdc: int
    price_display: str
    pnl: PositionPnLOut

    @classmethod
    def from_domain(cls, item: PortfolioItem) -> "PortfolioItemOut":
        return cls(
            mint=item.mint,
            ticker=item.ticker,
            shares=item.shares,
            price_usdc=item.price_usdc,
            price_display=micro_to_display(item.price_usdc),
            pnl=PositionPnLOut.from_domain(item.pnl),
        )


class PortfolioOut(BaseModel):
    wallet: str
    items: list[PortfolioItemOut]
    total: int
