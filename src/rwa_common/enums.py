"""Global enums: must match DB CHECK constraints exactly."""

from enum import Enum


class TradeSide(str, Enum):
    BUY = "buy"
    SELL = "sell"


class EventName(str, Enum):
    """Anchor event names emitted by the registry and market programs."""
    ASSET_CREATED = "AssetCreated"
    ASSET_UPDATED = "AssetUpdated"
    SHARES_BOUGHT = "SharesBought"
    SHARES_SOLD = "SharesSold"
    DIVIDEND_OPENED = "DividendOpened"
    DIVIDEND_CLAIMED = "DividendClaimed"
    DIVIDEND_CLOSED = "DividendClosed"


class AssetSort(str, Enum):
    CREATED = "created"
    NAME = "name"
    PRICE = "price"


class HistoryType(str, Enum):
    ALL = "all"
    TRADES = "trades"
    CLAIMS = "claims"
    DIVIDENDS = "dividends"


class PriceMark(str, Enum):
    """Which price historical P&L marks positions at."""
    CURRENT = "current"        # asset's stored price (coarse)
    LAST_TRADE = "last_trade"  # last per-share price seen in the ledger replay
