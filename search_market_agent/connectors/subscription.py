"""程序账户变更订阅（Solana WebSocket programSubscribe）。

每条通知都派发为独立的 asyncio 任务，处理耗时不会阻塞后续通知。
连接断开后按指数退避重连；不维护回放游标，断线期间错过的通知不会补发。
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Set

from solana.rpc.commitment import Commitment
from solana.rpc.websocket_api import connect
from solders.pubkey import Pubkey
from solders.rpc.responses import ProgramNotification
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception_type, wait_exponential
from websockets.exceptions import ConnectionClosed, InvalidHandshake

from ..services.reporting import ErrorReporter

logger = logging.getLogger(__name__)

AccountHandler = Callable[[Pubkey, bytes], Awaitable[object]]

_RECONNECT_ERRORS = (ConnectionClosed, InvalidHandshake, OSError, asyncio.TimeoutError)


def _log_reconnect(state: RetryCallState) -> None:
    exc = state.outcome.exception() if state.outcome else None
    logger.warning("program subscription dropped (%s), reconnecting (attempt %d)", exc, state.attempt_number)


class ProgramAccountFeed:
    """订阅某个程序拥有的全部账户的变更。

    Args:
        ws_endpoint: 账本 WebSocket 端点。
        program_id: 被订阅的程序地址。
        handler: 每条通知调用一次，参数为账户地址与原始数据。
        reporter: 处理器抛出未预期异常时的上报器。
        commitment: 订阅使用的确认级别。
    """

    def __init__(
        self,
        ws_endpoint: str,
        program_id: Pubkey,
        handler: AccountHandler,
        reporter: ErrorReporter,
        commitment: str = "confirmed",
    ):
        self.ws_endpoint = ws_endpoint
        self.program_id = program_id
        self.handler = handler
        self.reporter = reporter
        self.commitment = Commitment(commitment)
        self._tasks: Set[asyncio.Task] = set()
        self._stop = False

    async def run(self) -> None:
        """启动订阅并持续监听，断线自动重连，直到调用 stop()。"""
        while not self._stop:
            async for attempt in AsyncRetrying(
                wait=wait_exponential(multiplier=1, min=1, max=30),
                retry=retry_if_exception_type(_RECONNECT_ERRORS),
                before_sleep=_log_reconnect,
                reraise=True,
            ):
                with attempt:
                    await self._listen()

    async def _listen(self) -> None:
        async with connect(self.ws_endpoint) as websocket:
            await websocket.program_subscribe(self.program_id, commitment=self.commitment, encoding="base64")
            first = await websocket.recv()
            logger.info("subscribed to program %s (subscription %s)", self.program_id, first[0].result)
            async for messages in websocket:
                for message in messages:
                    if isinstance(message, ProgramNotification):
                        keyed = message.result.value
                        self.dispatch(keyed.pubkey, bytes(keyed.account.data))
                if self._stop:
                    return

    def dispatch(self, address: Pubkey, data: bytes) -> asyncio.Task:
        """为一条通知创建独立处理任务。"""
        task = asyncio.create_task(self._handle(address, data))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _handle(self, address: Pubkey, data: bytes) -> None:
        try:
            await self.handler(address, data)
        except Exception as exc:  # noqa: BLE001
            self.reporter.report(exc, {"searchMarketId": str(address)})

    async def drain(self) -> None:
        """等待所有进行中的通知处理完成。"""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def stop(self) -> None:
        """请求结束监听循环。"""
        self._stop = True

    @property
    def pending(self) -> int:
        return len(self._tasks)


__all__ = ["ProgramAccountFeed", "AccountHandler"]
