"""EventDecoder: transaction logs and registry accounts to typed values.

Two decoding paths, each line taking at most one:
  - `Program data: <base64>` lines are Anchor events (discriminator + Borsh).
  - Any other line containing an event name is a marker; it yields an event
    only when the account layout supplies every field of that event.
Malformed input never raises; it yields no event.
"""

import base64
import binascii
import dataclasses
import logging
import re
from collections.abc import Iterable, Sequence
from typing import Any

from src.rwa_common.enums import EventName
from src.rwa_indexer.domain.borsh import BorshDecodeError, BorshReader
from src.rwa_indexer.domain.events import EVENT_TYPES, AssetAccount, ProgramEvent
from src.rwa_indexer.domain.schemas import (
    ACCOUNT_LAYOUTS,
    ASSET_ACCOUNT_DISCRIMINATOR,
    ASSET_ACCOUNT_LEN,
    CURRENT_LAYOUT_VERSION,
    SCHEMAS_BY_DISCRIMINATOR,
    SUPPLEMENTARY_ROLES,
)

logger = logging.getLogger(__name__)

DATA_PREFIX = "Program data: "

_INVOKE_RE = re.compile(r"^Program (\S+) invoke \[\d+\]")
_EXIT_RE = re.compile(r"^Program (\S+) (?:success|failed)")


class EventDecoder:
    def __init__(
        self,
        program_ids: Iterable[str] | None = None,
        layout_version: int = CURRENT_LAYOUT_VERSION,
    ) -> None:
        # Restrict `Program data` lines to these programs when the invoke
        # stack is known; CPI'd programs may emit their own events.
        self.program_ids = frozenset(program_ids) if program_ids else None
        self.layouts = ACCOUNT_LAYOUTS[layout_version]

    def decode_logs(
        self, logs: Sequence[str], account_keys: Sequence[str] | None = None
    ) -> list[ProgramEvent]:
        keys = list(account_keys or [])
        found: list[tuple[int, ProgramEvent]] = []
        markers: list[tuple[int, EventName]] = []
        stack: list[str] = []

        for position, line in enumerate(logs):
            if not isinstance(line, str):
                continue
            invoke = _INVOKE_RE.match(line)
            if invoke:
                stack.append(invoke.group(1))
                continue
            if _EXIT_RE.match(line):
                if stack:
                    stack.pop()
                continue
            if line.startswith(DATA_PREFIX):
                if self.program_ids and stack and stack[-1] not in self.program_ids:
                    continue
                event = self._decode_data(line[len(DATA_PREFIX):].strip(), keys)
                if event is not None:
                    found.append((position, event))
                continue
            for name in EventName:
                if name.value in line:
                    markers.append((position, name))

        # A marker for an event already decoded from its payload is the same event.
        decoded_names = {event.name for _, event in found}
        for position, name in markers:
            if name in decoded_names:
                continue
            event = self._from_accounts(name, keys)
            if event is not None:
                found.append((position, event))

        found.sort(key=lambda item: item[0])
        return [event for _, event in found]

    def decode_asset_account(self, address: str, data: bytes) -> AssetAccount | None:
        if len(data) < ASSET_ACCOUNT_LEN or data[:8] != ASSET_ACCOUNT_DISCRIMINATOR:
            return None
        reader = BorshReader(data, 8)
        try:
            return AssetAccount(
                address=address,
                issuer=reader.read_pubkey(),
                mint=reader.read_pubkey(),
                usdc_mint=reader.read_pubkey(),
                decimals=reader.read_u8(),
                price_usdc=reader.read_u64(),
                total_supply=reader.read_u64(),
                free_float=reader.read_u64(),
            )
        except BorshDecodeError as exc:
            logger.debug("Asset account %s not decodable: %s", address, exc)
            return None

    # ---- internals ----

    def _decode_data(self, encoded: str, keys: list[str]) -> ProgramEvent | None:
        try:
            raw = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError):
            logger.debug("Skipping non-base64 program data: %.40s", encoded)
            return None
        schema = SCHEMAS_BY_DISCRIMINATOR.get(raw[:8])
        if schema is None:
            return None
        try:
            fields: dict[str, Any] = schema.decode_fields(BorshReader(raw, 8))
        except BorshDecodeError as exc:
            logger.debug("Truncated %s payload: %s", schema.name.value, exc)
            return None

        extra = SUPPLEMENTARY_ROLES.get(schema.name)
        layout = self.layouts.get(schema.name)
        if extra and layout is not None and keys:
            roles = layout.resolve(keys)
            # Only trust the layout when it agrees with the payload.
            if all(fields.get(role, value) == value for role, value in roles.items()):
                for role in extra:
                    if role in roles:
                        fields[role] = roles[role]
        return EVENT_TYPES[schema.name](**fields)

    def _from_accounts(self, name: EventName, keys: list[str]) -> ProgramEvent | None:
        layout = self.layouts.get(name)
        if layout is None or not keys:
            return None
        roles = layout.resolve(keys)
        cls = EVENT_TYPES[name]
        fields = dataclasses.fields(cls)
        required = [
            f.name
            for f in fields
            if f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING
        ]
        missing = [fname for fname in required if fname not in roles]
        if missing:
            logger.debug("Marker %s skipped: no account role for %s", name.value, missing)
            return None
        known = {f.name for f in fields}
        return cls(**{role: value for role, value in roles.items() if role in known})
