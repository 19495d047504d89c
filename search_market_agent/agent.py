"""进程级装配：钱包、RPC 连接与各组件只在启动时创建一次，显式注入。"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from solders.keypair import Keypair

from .clients.ledger import LedgerClient
from .clients.search import SearchClient
from .config import Settings
from .connectors.subscription import ProgramAccountFeed
from .liveness import build_server
from .services.attempts import AttemptTracker
from .services.funding import AirdropFunder
from .services.reporting import ErrorReporter
from .services.resolver import MarketResolver
from .services.sequencer import TransactionSequencer
from .services.subscriber import ChangeSubscriber
from .storage import SettlementJournal
from .wallet import load_wallet

logger = logging.getLogger(__name__)


@dataclass
class Agent:
    settings: Settings
    wallet: Keypair
    ledger: LedgerClient
    airdrop_ledger: Optional[LedgerClient]
    search: SearchClient
    subscriber: ChangeSubscriber
    feed: ProgramAccountFeed

    async def close(self) -> None:
        closers = [self.ledger.close(), self.search.close()]
        if self.airdrop_ledger is not None and self.airdrop_ledger is not self.ledger:
            closers.append(self.airdrop_ledger.close())
        await asyncio.gather(*closers)


def build_agent(settings: Settings, wallet: Optional[Keypair] = None) -> Agent:
    """根据配置构建完整 agent。

    Raises:
        ConfigError: 缺少必需配置。
    """
    settings.require_runtime()
    program_id = settings.program_pubkey
    wallet = wallet or load_wallet(settings.wallet_path)
    reporter = ErrorReporter(settings.bugsnag_api_key)

    endpoint = str(settings.endpoint)
    ledger = LedgerClient(endpoint, wallet, settings.commitment)

    airdrop_ledger: Optional[LedgerClient] = None
    funder: Optional[AirdropFunder] = None
    if settings.airdrop_enabled:
        airdrop_endpoint = settings.resolved_airdrop_endpoint or endpoint
        airdrop_ledger = (
            ledger if airdrop_endpoint == endpoint else LedgerClient(airdrop_endpoint, wallet, settings.commitment)
        )
        funder = AirdropFunder(
            airdrop_ledger,
            wallet.pubkey(),
            threshold_sol=settings.airdrop_threshold_sol,
            amount_sol=settings.airdrop_amount_sol,
        )

    search = SearchClient(settings)
    sequencer = TransactionSequencer(
        ledger,
        program_id,
        base_price=settings.base_price_lamports,
        price_step=settings.price_step_lamports,
        deposit_quantity=settings.deposit_quantity,
        order_quantity=settings.order_quantity,
        journal=SettlementJournal.in_dir(settings.ensure_data_dir()),
    )
    attempts = AttemptTracker(settings.attempt_cache_size) if settings.dedupe_candidates else None
    subscriber = ChangeSubscriber(MarketResolver(search), sequencer, reporter, funder=funder, attempts=attempts)
    feed = ProgramAccountFeed(
        settings.resolved_ws_endpoint,
        program_id,
        subscriber.handle_account,
        reporter,
        commitment=settings.commitment,
    )
    return Agent(
        settings=settings,
        wallet=wallet,
        ledger=ledger,
        airdrop_ledger=airdrop_ledger,
        search=search,
        subscriber=subscriber,
        feed=feed,
    )


async def run_agent(agent: Agent) -> None:
    """运行订阅与存活探针，直到任一方退出。"""
    server = build_server(agent.settings.port)
    logger.info("listening for program %s, liveness on :%d", agent.feed.program_id, agent.settings.port)
    tasks = [asyncio.create_task(agent.feed.run()), asyncio.create_task(server.serve())]
    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        for task in done:
            task.result()
    finally:
        agent.feed.stop()
        await agent.feed.drain()
        await agent.close()


__all__ = ["Agent", "build_agent", "run_agent"]
