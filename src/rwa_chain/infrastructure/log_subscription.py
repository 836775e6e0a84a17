"""Websocket `logsSubscribe` stream with reconnect.

Delivery is at-least-once: after a reconnect the node may replay recent
notifications, and anything confirmed while disconnected is lost to this
stream (asset sync covers registry state; trades need a backfill).
"""

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from typing import Any

import aiohttp

from src.rwa_chain.domain.models import LogNotification
from src.rwa_common.errors import ChainRpcError

logger = logging.getLogger(__name__)


class LogSubscriber:
    def __init__(
        self,
        ws_url: str,
        commitment: str = "confirmed",
        reconnect_delay: float = 1.0,
        max_reconnect_delay: float = 30.0,
        receive_timeout: float = 5.0,
    ) -> None:
        self.ws_url = ws_url
        self.commitment = commitment
        self.reconnect_delay = reconnect_delay
        self.max_reconnect_delay = max_reconnect_delay
        self.receive_timeout = receive_timeout
        self.ws_timeout = aiohttp.ClientTimeout(total=None)
        self.connected = False

    async def stream(
        self, program_id: str, stop_event: asyncio.Event
    ) -> AsyncIterator[LogNotification]:
        """Yield notifications for transactions mentioning `program_id` until stopped."""
        delay = self.reconnect_delay
        while not stop_event.is_set():
            try:
                async with aiohttp.ClientSession(timeout=self.ws_timeout) as session:
                    async with session.ws_connect(self.ws_url, heartbeat=20) as ws:
                        sub_id = await self._subscribe(ws, program_id)
                        self.connected = True
                        delay = self.reconnect_delay
                        logger.info(
                            "Subscribed to logs of %s (subscription %s)", program_id, sub_id
                        )
                        try:
                            async for notification in self._receive(ws, sub_id, stop_event):
                                yield notification
                        finally:
                            self.connected = False
                            await self._unsubscribe(ws, sub_id)
            except (aiohttp.ClientError, asyncio.TimeoutError, ChainRpcError, ValueError) as exc:
                self.connected = False
                logger.warning(
                    "Log subscription for %s dropped: %s; reconnecting in %.1fs",
                    program_id,
                    exc,
                    delay,
                )
            if stop_event.is_set():
                break
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass
            delay = min(delay * 2, self.max_reconnect_delay)

    async def _subscribe(self, ws: aiohttp.ClientWebSocketResponse, program_id: str) -> int:
        await ws.send_json(
            {
                "jsonrpc": "2.0",
                "id": 1,
                "method": "logsSubscribe",
                "params": [{"mentions": [program_id]}, {"commitment": self.commitment}],
            }
        )
        while True:
            msg = await ws.receive(timeout=30)
            if msg.type != aiohttp.WSMsgType.TEXT:
                raise aiohttp.ClientError(f"websocket closed during subscribe: {msg.type}")
            data = msg.json(loads=json.loads)
            if data.get("id") != 1:
                continue
            if "error" in data:
                raise ChainRpcError("logsSubscribe", data["error"])
            return int(data["result"])

    async def _receive(
        self,
        ws: aiohttp.ClientWebSocketResponse,
        sub_id: int,
        stop_event: asyncio.Event,
    ) -> AsyncIterator[LogNotification]:
        while not stop_event.is_set():
            try:
                msg = await ws.receive(timeout=self.receive_timeout)
            except asyncio.TimeoutError:
                continue

            if msg.type in {aiohttp.WSMsgType.CLOSE, aiohttp.WSMsgType.CLOSED, aiohttp.WSMsgType.ERROR}:
                raise aiohttp.ClientError(f"websocket closed: {msg.type}")
            if msg.type != aiohttp.WSMsgType.TEXT:
                continue
            notification = parse_notification(msg.json(loads=json.loads), sub_id)
            if notification is not None:
                yield notification

    async def _unsubscribe(self, ws: aiohttp.ClientWebSocketResponse, sub_id: int) -> None:
        if ws.closed:
            return
        try:
            await ws.send_json(
                {"jsonrpc": "2.0", "id": 2, "method": "logsUnsubscribe", "params": [sub_id]}
            )
        except (aiohttp.ClientError, ConnectionResetError) as exc:
            logger.debug("logsUnsubscribe for %s not sent: %s", sub_id, exc)
        else:
            logger.info("Unsubscribed from logs (subscription %s)", sub_id)


def parse_notification(data: dict[str, Any], sub_id: int | None = None) -> LogNotification | None:
    """Extract a LogNotification from a `logsNotification` message, else None."""
    if data.get("method") != "logsNotification":
        return None
    params = data.get("params") or {}
    if sub_id is not None and params.get("subscription") != sub_id:
        return None
    result = params.get("result") or {}
    value = result.get("value") or {}
    signature = value.get("signature")
    if not signature:
        return None
    return LogNotification(
        signature=signature,
        logs=list(value.get("logs") or []),
        slot=int((result.get("context") or {}).get("slot", 0)),
        err=value.get("err"),
    )
