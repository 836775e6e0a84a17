"""Solana JSON-RPC over HTTP (aiohttp).

Each call retries with doubling backoff; an RPC `error` object is not retried
and surfaces as ChainRpcError.
"""

import asyncio
import base64
import binascii
import logging
from typing import Any

import aiohttp

from src.rwa_chain.domain.models import (
    ProgramAccount,
    ProgramAccountsSnapshot,
    TransactionInfo,
)
from src.rwa_common.errors import ChainRpcError

logger = logging.getLogger(__name__)

COMMITMENT = "confirmed"


class SolanaRpcClient:
    def __init__(
        self,
        url: str,
        max_retries: int = 5,
        timeout_sec: float = 12.0,
        backoff_sec: float = 0.5,
    ) -> None:
        self.url = url
        self.max_retries = max_retries
        self.timeout = aiohttp.ClientTimeout(total=timeout_sec)
        self._backoff_sec = backoff_sec
        self._session: aiohttp.ClientSession | None = None
        self._id = 1

    async def __aenter__(self) -> "SolanaRpcClient":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # type: ignore[no-untyped-def]
        await self.close()

    async def open(self) -> None:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self.timeout)

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def call(self, method: str, params: list[Any]) -> Any:
        if self._session is None:
            raise RuntimeError("RPC session is not initialized")
        payload = {"jsonrpc": "2.0", "id": self._id, "method": method, "params": params}
        self._id += 1

        backoff = self._backoff_sec
        for attempt in range(1, self.max_retries + 1):
            try:
                async with self._session.post(self.url, json=payload) as resp:
                    resp.raise_for_status()
                    data = await resp.json(content_type=None)
            except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
                if attempt >= self.max_retries:
                    raise ChainRpcError(method, exc) from exc
                logger.warning(
                    "RPC %s attempt %d/%d failed: %s", method, attempt, self.max_retries, exc
                )
                await asyncio.sleep(backoff)
                backoff *= 2
                continue
            if "error" in data:
                raise ChainRpcError(method, data["error"])
            return data.get("result")
        raise ChainRpcError(method, "no attempts made")

    async def get_transaction(self, signature: str) -> TransactionInfo | None:
        result = await self.call(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "jsonParsed",
                    "commitment": COMMITMENT,
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        )
        if result is None:
            return None
        return parse_transaction(signature, result)

    async def get_program_accounts(self, program_id: str) -> ProgramAccountsSnapshot:
        result = await self.call(
            "getProgramAccounts",
            [
                program_id,
                {"encoding": "base64", "commitment": COMMITMENT, "withContext": True},
            ],
        )
        return parse_program_accounts(result)


def parse_transaction(signature: str, result: dict[str, Any]) -> TransactionInfo:
    """Flatten a jsonParsed getTransaction result.

    Account keys keep message order; v0 loaded addresses (writable, then
    readonly) are appended, matching how the runtime indexes them.
    """
    message = result.get("transaction", {}).get("message", {})
    keys: list[str] = []
    for key in message.get("accountKeys", []):
        if isinstance(key, dict):
            keys.append(str(key.get("pubkey", "")))
        else:
            keys.append(str(key))
    meta = result.get("meta") or {}
    loaded = meta.get("loadedAddresses") or {}
    keys.extend(loaded.get("writable", []))
    keys.extend(loaded.get("readonly", []))
    return TransactionInfo(
        signature=signature,
        account_keys=keys,
        slot=int(result.get("slot", 0)),
        block_time=result.get("blockTime"),
        logs=list(meta.get("logMessages") or []),
    )


def parse_program_accounts(result: Any) -> ProgramAccountsSnapshot:
    """Accept both the withContext envelope and a bare list."""
    if isinstance(result, dict):
        slot = int(result.get("context", {}).get("slot", 0))
        entries = result.get("value") or []
    else:
        slot = 0
        entries = result or []

    accounts: list[ProgramAccount] = []
    for entry in entries:
        address = entry.get("pubkey")
        raw = (entry.get("account") or {}).get("data")
        if not address or not raw:
            continue
        encoded = raw[0] if isinstance(raw, list) else raw
        try:
            data = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError):
            logger.warning("Skipping account %s: data is not base64", address)
            continue
        accounts.append(ProgramAccount(address=address, data=data))
    return ProgramAccountsSnapshot(slot=slot, accounts=accounts)
