"""Versioned decoding schemas.

`EventSchema` describes the Borsh payload of one Anchor event.
`AccountLayout` maps named roles to positions in an instruction's account
list; positions change when an instruction's accounts struct changes, so
layouts are keyed by version.
"""

import hashlib
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from src.rwa_common.enums import EventName
from src.rwa_indexer.domain.borsh import BorshReader

_FIELD_READERS: dict[str, Callable[[BorshReader], Any]] = {
    "pubkey": BorshReader.read_pubkey,
    "u8": BorshReader.read_u8,
    "u64": BorshReader.read_u64,
    "i64": BorshReader.read_i64,
    "bool": BorshReader.read_bool,
}


def event_discriminator(name: str) -> bytes:
    return hashlib.sha256(f"event:{name}".encode()).digest()[:8]


def account_discriminator(name: str) -> bytes:
    return hashlib.sha256(f"account:{name}".encode()).digest()[:8]


@dataclass(frozen=True)
class EventSchema:
    name: EventName
    fields: tuple[tuple[str, str], ...]

    @property
    def discriminator(self) -> bytes:
        return event_discriminator(self.name.value)

    def decode_fields(self, reader: BorshReader) -> dict[str, Any]:
        return {fname: _FIELD_READERS[kind](reader) for fname, kind in self.fields}


@dataclass(frozen=True)
class AccountLayout:
    name: EventName
    version: int
    roles: Mapping[str, int] = field(default_factory=dict)

    def resolve(self, account_keys: Sequence[str]) -> dict[str, str]:
        """Roles whose index exists in `account_keys`."""
        return {
            role: account_keys[index]
            for role, index in self.roles.items()
            if 0 <= index < len(account_keys) and account_keys[index]
        }


EVENT_SCHEMAS: tuple[EventSchema, ...] = (
    EventSchema(
        EventName.ASSET_CREATED,
        (
            ("asset", "pubkey"),
            ("issuer", "pubkey"),
            ("asset_mint", "pubkey"),
            ("price_usdc", "u64"),
            ("total_supply", "u64"),
            ("free_float", "u64"),
        ),
    ),
    EventSchema(
        EventName.ASSET_UPDATED,
        (("asset", "pubkey"), ("price_usdc", "u64"), ("free_float", "u64")),
    ),
    EventSchema(
        EventName.SHARES_BOUGHT,
        (("buyer", "pubkey"), ("mint", "pubkey"), ("amount", "u64"), ("total_paid", "u64")),
    ),
    EventSchema(
        EventName.SHARES_SOLD,
        (
            ("seller", "pubkey"),
            ("mint", "pubkey"),
            ("amount", "u64"),
            ("total_received", "u64"),
        ),
    ),
    EventSchema(
        EventName.DIVIDEND_OPENED,
        (
            ("dividend", "pubkey"),
            ("asset", "pubkey"),
            ("total_amount", "u64"),
            ("supply_circ_at_open", "u64"),
        ),
    ),
    EventSchema(
        EventName.DIVIDEND_CLAIMED,
        (("dividend", "pubkey"), ("holder", "pubkey"), ("amount", "u64")),
    ),
    EventSchema(
        EventName.DIVIDEND_CLOSED,
        (("dividend", "pubkey"), ("remaining_amount", "u64")),
    ),
)

SCHEMAS_BY_DISCRIMINATOR: dict[bytes, EventSchema] = {
    schema.discriminator: schema for schema in EVENT_SCHEMAS
}

# Instruction account orders of the registry and market programs.
ACCOUNT_LAYOUTS: dict[int, dict[EventName, AccountLayout]] = {
    1: {
        EventName.ASSET_CREATED: AccountLayout(
            EventName.ASSET_CREATED, 1, {"issuer": 0, "asset": 1, "asset_mint": 2, "usdc_mint": 3}
        ),
        EventName.ASSET_UPDATED: AccountLayout(EventName.ASSET_UPDATED, 1, {"asset": 1}),
        EventName.SHARES_BOUGHT: AccountLayout(
            EventName.SHARES_BOUGHT, 1, {"buyer": 0, "mint": 2}
        ),
        EventName.SHARES_SOLD: AccountLayout(EventName.SHARES_SOLD, 1, {"seller": 0, "mint": 2}),
        EventName.DIVIDEND_OPENED: AccountLayout(
            EventName.DIVIDEND_OPENED, 1, {"asset": 1, "dividend": 2}
        ),
        EventName.DIVIDEND_CLAIMED: AccountLayout(
            EventName.DIVIDEND_CLAIMED, 1, {"holder": 0, "dividend": 2, "claim": 3}
        ),
        EventName.DIVIDEND_CLOSED: AccountLayout(EventName.DIVIDEND_CLOSED, 1, {"dividend": 2}),
    },
}

CURRENT_LAYOUT_VERSION = max(ACCOUNT_LAYOUTS)

# Account-derived roles an event payload does not carry.
SUPPLEMENTARY_ROLES: dict[EventName, tuple[str, ...]] = {
    EventName.ASSET_CREATED: ("usdc_mint",),
    EventName.DIVIDEND_CLAIMED: ("claim",),
}

ASSET_ACCOUNT_DISCRIMINATOR = account_discriminator("Asset")
ASSET_ACCOUNT_LEN = 8 + 32 * 3 + 1 + 8 * 3 + 3
