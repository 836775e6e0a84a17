"""Tests for EventDecoder: Anchor `Program data` payloads, log markers, asset accounts."""

import base64
import struct

import base58
from hypothesis import given
from hypothesis import strategies as st

from src.rwa_common.enums import EventName
from src.rwa_indexer.domain.decoder import EventDecoder
from src.rwa_indexer.domain.events import (
    AssetCreated,
    DividendClaimed,
    DividendClosed,
    SharesBought,
    SharesSold,
)
from src.rwa_indexer.domain.schemas import (
    ASSET_ACCOUNT_DISCRIMINATOR,
    EVENT_SCHEMAS,
    event_discriminator,
)

MARKET = "Fg6PaFpoGXkYsidMpWTK6W2BeZ7FEfcYkg476zPFsLnT"
OTHER = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"


def key(n: int) -> str:
    return base58.b58encode(bytes([n]) * 32).decode()


BUYER, MINT, ASSET, ISSUER, USDC, DIVIDEND, CLAIM = (key(n) for n in range(1, 8))

_SCHEMAS = {schema.name: schema for schema in EVENT_SCHEMAS}


def encode_event(name: EventName, **values: object) -> str:
    schema = _SCHEMAS[name]
    raw = bytearray(event_discriminator(name.value))
    for fname, kind in schema.fields:
        value = values[fname]
        if kind == "pubkey":
            raw += base58.b58decode(value)  # type: ignore[arg-type]
        elif kind == "u64":
            raw += struct.pack("<Q", value)
        elif kind == "u8":
            raw += struct.pack("<B", value)
    return "Program data: " + base64.b64encode(bytes(raw)).decode()


def invoke(program: str, *lines: str) -> list[str]:
    return [f"Program {program} invoke [1]", *lines, f"Program {program} success"]


def bought_line(amount: int = 100, total_paid: int = 1_000_000_000) -> str:
    return encode_event(
        EventName.SHARES_BOUGHT, buyer=BUYER, mint=MINT, amount=amount, total_paid=total_paid
    )


class TestProgramData:
    def test_decodes_shares_bought(self) -> None:
        events = EventDecoder().decode_logs(invoke(MARKET, bought_line()))
        assert events == [SharesBought(buyer=BUYER, mint=MINT, amount=100, total_paid=1_000_000_000)]

    def test_decodes_without_invoke_lines(self) -> None:
        # logsNotification payloads can be truncated to the data lines
        events = EventDecoder(program_ids=[MARKET]).decode_logs([bought_line()])
        assert len(events) == 1

    def test_filters_other_programs(self) -> None:
        logs = invoke(OTHER, bought_line())
        assert EventDecoder(program_ids=[MARKET]).decode_logs(logs) == []

    def test_cpi_stack_restores_outer_program(self) -> None:
        logs = [
            f"Program {MARKET} invoke [1]",
            f"Program {OTHER} invoke [2]",
            bought_line(amount=1),
            f"Program {OTHER} success",
            bought_line(amount=2),
            f"Program {MARKET} success",
        ]
        events = EventDecoder(program_ids=[MARKET]).decode_logs(logs)
        assert [e.amount for e in events] == [2]  # type: ignore[union-attr]

    def test_events_keep_log_order(self) -> None:
        sold = encode_event(
            EventName.SHARES_SOLD, seller=BUYER, mint=MINT, amount=5, total_received=7
        )
        events = EventDecoder().decode_logs(invoke(MARKET, sold, bought_line()))
        assert [type(e) for e in events] == [SharesSold, SharesBought]

    def test_invalid_base64_is_skipped(self) -> None:
        assert EventDecoder().decode_logs(["Program data: !!!not base64!!!"]) == []

    def test_unknown_discriminator_is_skipped(self) -> None:
        line = "Program data: " + base64.b64encode(b"\x00" * 48).decode()
        assert EventDecoder().decode_logs([line]) == []

    def test_truncated_payload_is_skipped(self) -> None:
        raw = base64.b64decode(bought_line()[len("Program data: "):])
        line = "Program data: " + base64.b64encode(raw[:-4]).decode()
        assert EventDecoder().decode_logs([line]) == []

    def test_non_string_lines_are_ignored(self) -> None:
        assert EventDecoder().decode_logs([None, 42, bought_line()]) != []  # type: ignore[list-item]


class TestSupplementaryRoles:
    def _created(self) -> str:
        return encode_event(
            EventName.ASSET_CREATED,
            asset=ASSET,
            issuer=ISSUER,
            asset_mint=MINT,
            price_usdc=10_000_000,
            total_supply=1000,
            free_float=1000,
        )

    def test_usdc_mint_from_matching_layout(self) -> None:
        events = EventDecoder().decode_logs([self._created()], [ISSUER, ASSET, MINT, USDC])
        assert events == [
            AssetCreated(
                asset=ASSET,
                issuer=ISSUER,
                asset_mint=MINT,
                price_usdc=10_000_000,
                total_supply=1000,
                free_float=1000,
                usdc_mint=USDC,
            )
        ]

    def test_layout_disagreeing_with_payload_is_ignored(self) -> None:
        events = EventDecoder().decode_logs([self._created()], [BUYER, ASSET, MINT, USDC])
        assert events[0].usdc_mint is None  # type: ignore[union-attr]

    def test_claim_pda_from_layout(self) -> None:
        line = encode_event(EventName.DIVIDEND_CLAIMED, dividend=DIVIDEND, holder=BUYER, amount=3)
        events = EventDecoder().decode_logs([line], [BUYER, ASSET, DIVIDEND, CLAIM])
        assert events == [DividendClaimed(dividend=DIVIDEND, holder=BUYER, amount=3, claim=CLAIM)]

    def test_claim_identity_does_not_depend_on_accounts(self) -> None:
        line = encode_event(EventName.DIVIDEND_CLAIMED, dividend=DIVIDEND, holder=BUYER, amount=3)
        (full,) = EventDecoder().decode_logs([line], [BUYER, ASSET, DIVIDEND, CLAIM])
        (bare,) = EventDecoder().decode_logs([line])
        assert bare.claim is None  # type: ignore[union-attr]
        assert (full.dividend, full.holder) == (bare.dividend, bare.holder)  # type: ignore[union-attr]


class TestMarkers:
    def test_dividend_closed_from_accounts(self) -> None:
        events = EventDecoder().decode_logs(
            ["Program log: DividendClosed"], [ISSUER, ASSET, DIVIDEND]
        )
        assert events == [DividendClosed(dividend=DIVIDEND)]

    def test_marker_without_accounts_yields_nothing(self) -> None:
        assert EventDecoder().decode_logs(["Program log: DividendClosed"]) == []

    def test_marker_missing_amounts_yields_nothing(self) -> None:
        logs = ["Program log: SharesBought"]
        assert EventDecoder().decode_logs(logs, [BUYER, ASSET, MINT]) == []

    def test_marker_does_not_duplicate_payload_event(self) -> None:
        closed = encode_event(EventName.DIVIDEND_CLOSED, dividend=DIVIDEND, remaining_amount=11)
        logs = ["Program log: DividendClosed", closed]
        events = EventDecoder().decode_logs(logs, [ISSUER, ASSET, DIVIDEND])
        assert events == [DividendClosed(dividend=DIVIDEND, remaining_amount=11)]


@given(st.lists(st.one_of(st.text(), st.binary().map(lambda b: "Program data: " + base64.b64encode(b).decode()))))
def test_arbitrary_logs_never_raise(logs: list[str]) -> None:
    EventDecoder(program_ids=[MARKET]).decode_logs(logs, [BUYER, ASSET, DIVIDEND])


class TestAssetAccount:
    def _account(self, **overrides: object) -> bytes:
        raw = bytearray(overrides.get("disc", ASSET_ACCOUNT_DISCRIMINATOR))  # type: ignore[arg-type]
        raw += base58.b58decode(ISSUER) + base58.b58decode(MINT) + base58.b58decode(USDC)
        raw += struct.pack("<B", 6)
        raw += struct.pack("<QQQ", 12_000_000, 1_000, 400)
        raw += b"\x00" * 3
        return bytes(raw)

    def test_decodes(self) -> None:
        account = EventDecoder().decode_asset_account(ASSET, self._account())
        assert account is not None
        assert account.address == ASSET
        assert account.mint == MINT
        assert account.issuer == ISSUER
        assert account.usdc_mint == USDC
        assert account.decimals == 6
        assert (account.price_usdc, account.total_supply, account.free_float) == (12_000_000, 1000, 400)

    def test_wrong_discriminator(self) -> None:
        data = self._account(disc=b"\x00" * 8)
        assert EventDecoder().decode_asset_account(ASSET, data) is None

    def test_short_buffer(self) -> None:
        assert EventDecoder().decode_asset_account(ASSET, self._account()[:100]) is None
