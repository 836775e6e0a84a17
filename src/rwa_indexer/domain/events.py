"""Typed program events: a closed union over everything the indexer applies.

Field names mirror the Anchor event structs. Amounts are u64 micro-units
(USDC) or raw token units (shares); pubkeys are base58 strings.
"""

import dataclasses
from dataclasses import dataclass
from typing import Any, ClassVar, Union

from src.rwa_common.enums import EventName


@dataclass(frozen=True)
class AssetCreated:
    name: ClassVar[EventName] = EventName.ASSET_CREATED

    asset: str              # registry account (PDA)
    issuer: str
    asset_mint: str
    price_usdc: int
    total_supply: int
    free_float: int
    usdc_mint: str | None = None   # from the account layout, not the event
    decimals: int | None = None


@dataclass(frozen=True)
class AssetUpdated:
    name: ClassVar[EventName] = EventName.ASSET_UPDATED

    asset: str
    price_usdc: int
    free_float: int


@dataclass(frozen=True)
class SharesBought:
    name: ClassVar[EventName] = EventName.SHARES_BOUGHT

    buyer: str
    mint: str
    amount: int
    total_paid: int


@dataclass(frozen=True)
class SharesSold:
    name: ClassVar[EventName] = EventName.SHARES_SOLD

    seller: str
    mint: str
    amount: int
    total_received: int


@dataclass(frozen=True)
class DividendOpened:
    name: ClassVar[EventName] = EventName.DIVIDEND_OPENED

    dividend: str
    asset: str              # registry account (PDA); a mint is accepted too
    total_amount: int
    supply_circ_at_open: int


@dataclass(frozen=True)
class DividendClaimed:
    name: ClassVar[EventName] = EventName.DIVIDEND_CLAIMED

    dividend: str
    holder: str
    amount: int
    claim: str | None = None   # claim PDA, from the account layout; not part of the key


@dataclass(frozen=True)
class DividendClosed:
    name: ClassVar[EventName] = EventName.DIVIDEND_CLOSED

    dividend: str
    remaining_amount: int | None = None   # unknown when decoded from a log marker


ProgramEvent = Union[
    AssetCreated,
    AssetUpdated,
    SharesBought,
    SharesSold,
    DividendOpened,
    DividendClaimed,
    DividendClosed,
]

EVENT_TYPES: dict[EventName, type] = {
    cls.name: cls
    for cls in (
        AssetCreated,
        AssetUpdated,
        SharesBought,
        SharesSold,
        DividendOpened,
        DividendClaimed,
        DividendClosed,
    )
}


def event_payload(event: ProgramEvent) -> dict[str, Any]:
    """JSON-safe dict of an event, tagged with its name."""
    return {"name": event.name.value, **dataclasses.asdict(event)}


def serialization_key(event: ProgramEvent) -> str:
    """Key under which concurrent processing of events must be serialized."""
    if isinstance(event, (SharesBought, SharesSold)):
        return f"mint:{event.mint}"
    if isinstance(event, AssetCreated):
        return f"mint:{event.asset_mint}"
    if isinstance(event, AssetUpdated):
        return f"asset:{event.asset}"
    return f"dividend:{event.dividend}"


@dataclass(frozen=True)
class AssetAccount:
    """Decoded registry `Asset` account."""

    address: str
    issuer: str
    mint: str
    usdc_mint: str
    decimals: int
    price_usdc: int
    total_supply: int
    free_float: int
