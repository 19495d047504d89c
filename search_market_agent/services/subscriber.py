"""程序账户变更处理：识别未决市场并触发解析与结算。"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Optional, Protocol

from solders.pubkey import Pubkey

from ..errors import AgentError, CodecError
from ..program.layouts import account_kind, decode_account, is_blank
from ..types import AccountKind, MarketRecord, SearchCandidate, SettlementRecord
from .attempts import AttemptTracker
from .funding import AirdropFunder
from .reporting import ErrorReporter
from .resolver import MarketResolver

logger = logging.getLogger(__name__)


class Settler(Protocol):
    async def settle(self, market: Pubkey, candidate_index: int, candidate: SearchCandidate) -> SettlementRecord: ...


class ChangeSubscriber:
    """程序账户变更的处理器。

    每条通知独立处理，不加市场级互斥锁：同一市场的两条通知可能同时在
    结算中。启用 ``attempts`` 后，同一进程内已尝试过的
    ``(market, candidate_index)`` 不会再次结算；市场本身的解析仍然
    每条通知执行一次。

    Args:
        resolver: 市场解析器。
        sequencer: 交易编排器。
        reporter: 错误上报器。
        funder: 低余额空投检查，可为空。
        attempts: 已尝试候选集合，为空时不去重。
    """

    def __init__(
        self,
        resolver: MarketResolver,
        sequencer: Settler,
        reporter: ErrorReporter,
        funder: Optional[AirdropFunder] = None,
        attempts: Optional[AttemptTracker] = None,
    ):
        self.resolver = resolver
        self.sequencer = sequencer
        self.reporter = reporter
        self.funder = funder
        self.attempts = attempts

    async def handle_account(self, address: Pubkey, data: bytes) -> List[SettlementRecord]:
        """处理一条账户变更通知。

        Args:
            address: 发生变更的账户地址。
            data: 账户原始数据。

        Returns:
            本次成功完成的结算记录；被忽略或跳过的通知返回空列表。
        """
        if self.funder is not None:
            await self.funder.top_up()

        # 程序刚分配、尚未写入的账户全为零，不做解码。
        if is_blank(data):
            return []

        try:
            if account_kind(data) != AccountKind.MARKET:
                return []
            market = decode_account(data)
        except CodecError as exc:
            logger.debug("ignoring account %s: %s", address, exc)
            return []
        if not isinstance(market, MarketRecord):
            return []
        logger.info("market %s: %r", address, market.search_string)

        if market.decided:
            logger.info("market %s decided. Skipping...", address)
            return []

        context = {"searchMarketId": str(address), "searchMarket": _describe(market)}
        try:
            candidates = await self.resolver.resolve(market)
        except AgentError as exc:
            self.reporter.report(exc, context)
            return []

        outcomes = await asyncio.gather(
            *(self._settle_candidate(address, index, candidate, context) for index, candidate in enumerate(candidates))
        )
        return [outcome for outcome in outcomes if outcome is not None]

    async def _settle_candidate(
        self,
        address: Pubkey,
        index: int,
        candidate: SearchCandidate,
        context: dict[str, Any],
    ) -> Optional[SettlementRecord]:
        if self.attempts is not None and not self.attempts.claim(str(address), index):
            logger.info("market %s candidate %d already attempted, skipping", address, index)
            return None
        try:
            return await self.sequencer.settle(address, index, candidate)
        except AgentError as exc:
            self.reporter.report(exc, {**context, "candidateIndex": index, "url": candidate.url})
            return None


def _describe(market: MarketRecord) -> dict[str, str]:
    return {"search_string": market.search_string, "best_result": str(market.best_result)}


__all__ = ["ChangeSubscriber"]
