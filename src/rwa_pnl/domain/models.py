"""Domain models for rwa_pnl: pure dataclasses.

Money fields are Decimal USDC (already divided by 1e6); share counts are raw
token units.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

ZERO = Decimal(0)


@dataclass(frozen=True)
class TradeRecord:
    mint: str
    side: str            # buy | sell
    amount: int          # shares
    price_usdc: int      # total consideration, micro-USDC
    created_at: datetime


@dataclass(frozen=True)
class OpenPosition:
    mint: str
    shares: int
    price_usdc: int      # current asset price per share, micro-USDC
    ticker: str | None = None


@dataclass
class PositionPnL:
    mint: str
    shares: int = 0
    avg_cost_basis: Decimal = ZERO
    total_invested: Decimal = ZERO
    current_value: Decimal = ZERO
    profit_loss: Decimal = ZERO
    profit_loss_percent: Decimal = ZERO


@dataclass
class PortfolioPnL:
    wallet: str
    total_invested: Decimal = ZERO
    total_current_value: Decimal = ZERO
    total_profit_loss: Decimal = ZERO
    total_profit_loss_percent: Decimal = ZERO
    positions: list[PositionPnL] = field(default_factory=list)


@dataclass(frozen=True)
class PnLPoint:
    date: date
    pnl: Decimal


@dataclass(frozen=True)
class PricePoint:
    date: date
    price: Decimal       # average per-share price that day
    trades: int


@dataclass
class AssetPerformance:
    mint: str
    days: int
    points: list[PricePoint] = field(default_factory=list)
    first_price: Decimal = ZERO
    last_price: Decimal = ZERO
    performance_percent: Decimal = ZERO


@dataclass
class PortfolioItem:
    mint: str
    ticker: str | None
    shares: int
    price_usdc: int
    pnl: PositionPnL
