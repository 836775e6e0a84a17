"""Tests for rwa_pnl.domain.calculator: weighted-average cost basis."""

from datetime import UTC, date, datetime, timedelta
from decimal import Decimal

from hypothesis import given
from hypothesis import strategies as st

from src.rwa_common.enums import PriceMark
from src.rwa_pnl.domain.calculator import (
    CostBasisBook,
    asset_performance,
    historical_pnl,
    percent,
    portfolio_pnl,
    position_pnl,
    walk_trades,
)
from src.rwa_pnl.domain.models import OpenPosition, PositionPnL, TradeRecord

T0 = datetime(2026, 3, 1, 10, tzinfo=UTC)


def buy(amount: int, total_micro: int, at: datetime = T0, mint: str = "M1") -> TradeRecord:
    return TradeRecord(mint=mint, side="buy", amount=amount, price_usdc=total_micro, created_at=at)


def sell(amount: int, total_micro: int, at: datetime = T0, mint: str = "M1") -> TradeRecord:
    return TradeRecord(mint=mint, side="sell", amount=amount, price_usdc=total_micro, created_at=at)


class TestPercent:
    def test_zero_denominator(self) -> None:
        assert percent(Decimal(5), Decimal(0)) == 0

    def test_basic(self) -> None:
        assert percent(Decimal(1), Decimal(4)) == Decimal(25)


class TestCostBasisBook:
    def test_buys_accumulate(self) -> None:
        book = walk_trades([buy(100, 1_000_000_000), buy(100, 1_400_000_000)])
        assert book.total_shares == 200
        assert book.total_invested == Decimal(2400)
        assert book.avg_cost == Decimal(12)

    def test_sell_removes_proportional_basis(self) -> None:
        book = walk_trades([buy(100, 1_000_000_000), sell(25, 999_000_000)])
        assert book.total_shares == 75
        assert book.total_invested == Decimal(750)
        assert book.avg_cost == Decimal(10)

    def test_oversell_is_capped(self) -> None:
        book = walk_trades([buy(10, 100_000_000), sell(15, 1)])
        assert book.total_shares == 0
        assert book.total_invested == 0

    def test_sell_without_shares_leaves_book_unchanged(self) -> None:
        book = walk_trades([sell(10, 100_000_000)])
        assert book.total_shares == 0
        assert book.total_invested == 0
        assert book.avg_cost == 0

    def test_tracks_last_trade_price(self) -> None:
        book = walk_trades([buy(10, 100_000_000), sell(5, 60_000_000)])
        assert book.last_price == Decimal(12)


class TestPositionPnL:
    def test_buy_then_partial_sell(self) -> None:
        trades = [buy(100, 1_000_000_000), sell(50, 1_234_000_000)]
        result = position_pnl(OpenPosition(mint="M1", shares=50, price_usdc=12_000_000), trades)
        assert result.total_invested == Decimal(500)
        assert result.current_value == Decimal(600)
        assert result.profit_loss == Decimal(100)
        assert result.profit_loss_percent == Decimal(20)

    def test_rebased_to_live_share_count(self) -> None:
        # ledger says 100, positions row says 80 (e.g. a transfer out)
        result = position_pnl(
            OpenPosition(mint="M1", shares=80, price_usdc=10_000_000), [buy(100, 1_000_000_000)]
        )
        assert result.total_invested == Decimal(800)
        assert result.profit_loss == 0

    def test_no_trades_zero_basis(self) -> None:
        result = position_pnl(OpenPosition(mint="M1", shares=10, price_usdc=1_000_000), [])
        assert result.total_invested == 0
        assert result.current_value == Decimal(10)
        assert result.profit_loss_percent == 0

    def test_empty_position(self) -> None:
        result = position_pnl(OpenPosition(mint="M1", shares=0, price_usdc=1), [buy(1, 1)])
        assert result == PositionPnL(mint="M1")


class TestPortfolioPnL:
    def test_sums_positions(self) -> None:
        a = PositionPnL(mint="A", shares=1, total_invested=Decimal(100), current_value=Decimal(150))
        b = PositionPnL(mint="B", shares=1, total_invested=Decimal(300), current_value=Decimal(250))
        result = portfolio_pnl("W", [a, b])
        assert result.total_invested == Decimal(400)
        assert result.total_current_value == Decimal(400)
        assert result.total_profit_loss == 0
        assert result.total_profit_loss_percent == 0

    def test_empty(self) -> None:
        result = portfolio_pnl("W", [])
        assert result.total_invested == 0
        assert result.positions == []


class TestHistoricalPnL:
    def test_one_point_per_trade_day(self) -> None:
        day2 = T0 + timedelta(days=1)
        trades = [
            buy(10, 100_000_000),
            buy(10, 100_000_000, at=T0 + timedelta(hours=1), mint="M2"),
            sell(5, 60_000_000, at=day2),
        ]
        points = historical_pnl(trades, {"M1": 12_000_000, "M2": 9_000_000})
        assert [p.date for p in points] == [date(2026, 3, 1), date(2026, 3, 2)]
        # day 1: M1 10*12-100 = 20, M2 10*9-100 = -10
        assert points[0].pnl == Decimal(10)
        # day 2: only the traded M1 book is marked, 5*12-50 = 10
        assert points[1].pnl == Decimal(10)

    def test_same_day_marks_accumulate(self) -> None:
        trades = [
            buy(100, 1_000_000_000),
            buy(100, 1_000_000_000, at=T0 + timedelta(hours=3)),
        ]
        points = historical_pnl(trades, {"M1": 12_000_000})
        # 100*12-1000 = 200, then 200*12-2000 = 400
        assert len(points) == 1
        assert points[0].pnl == Decimal(600)

    def test_last_trade_mark(self) -> None:
        points = historical_pnl(
            [buy(10, 100_000_000), buy(10, 150_000_000)], {}, PriceMark.LAST_TRADE
        )
        # 10 at 10 - 100 = 0, then 20 shares at 15 - 250 invested = 50
        assert len(points) == 1
        assert points[0].pnl == Decimal(50)

    def test_empty(self) -> None:
        assert historical_pnl([], {}) == []


class TestAssetPerformance:
    def test_daily_average_and_change(self) -> None:
        trades = [
            buy(10, 100_000_000),
            buy(10, 120_000_000, at=T0 + timedelta(hours=2)),
            sell(10, 150_000_000, at=T0 + timedelta(days=2)),
        ]
        perf = asset_performance("M1", 30, trades)
        assert [p.price for p in perf.points] == [Decimal(11), Decimal(15)]
        assert perf.points[0].trades == 2
        assert perf.first_price == Decimal(11)
        assert perf.last_price == Decimal(15)
        assert round(perf.performance_percent, 2) == Decimal("36.36")

    def test_no_trades(self) -> None:
        perf = asset_performance("M1", 7, [])
        assert perf.points == []
        assert perf.performance_percent == 0


_trade = st.tuples(
    st.sampled_from(["buy", "sell"]),
    st.integers(min_value=1, max_value=10**6),
    st.integers(min_value=0, max_value=10**12),
)


@given(st.lists(_trade, max_size=40))
def test_book_invariants(trades: list[tuple[str, int, int]]) -> None:
    book = CostBasisBook(mint="M1")
    for side, amount, total in trades:
        book.apply(TradeRecord("M1", side, amount, total, T0))
        assert book.total_shares >= 0
        assert book.total_invested >= 0
        if book.total_shares == 0:
            assert book.avg_cost == 0


@given(st.lists(st.tuples(st.integers(1, 10**6), st.integers(0, 10**12)), min_size=1, max_size=20))
def test_selling_everything_releases_all_basis(buys: list[tuple[int, int]]) -> None:
    book = walk_trades([buy(a, t) for a, t in buys])
    book.apply(sell(book.total_shares, 0))
    assert book.total_shares == 0
    assert book.total_invested == 0
