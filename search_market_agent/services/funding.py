from __future__ import annotations

import logging
from typing import Optional, Protocol

from solana.constants import LAMPORTS_PER_SOL
from solders.pubkey import Pubkey

from ..errors import LedgerError

logger = logging.getLogger(__name__)


class AirdropLedger(Protocol):
    async def get_balance(self, pubkey: Pubkey) -> int: ...

    async def request_airdrop(self, pubkey: Pubkey, lamports: int) -> str: ...


class AirdropFunder:
    """余额低于阈值时请求空投。

    在每条通知到来时顺带检查一次，与实际花费并非原子操作；
    并发结算时余额不足仍可能出现，表现为交易提交失败。
    """

    def __init__(self, ledger: AirdropLedger, wallet: Pubkey, threshold_sol: float = 0.01, amount_sol: float = 1.0):
        self.ledger = ledger
        self.wallet = wallet
        self.threshold = int(LAMPORTS_PER_SOL * threshold_sol)
        self.amount = int(LAMPORTS_PER_SOL * amount_sol)

    async def top_up(self) -> Optional[str]:
        """必要时空投，返回空投签名；失败只记录日志，不影响后续处理。"""
        try:
            balance = await self.ledger.get_balance(self.wallet)
            if balance > self.threshold:
                return None
            signature = await self.ledger.request_airdrop(self.wallet, self.amount)
        except LedgerError as exc:
            logger.warning("airdrop check failed: %s", exc)
            return None
        logger.info("Airdrop signature: %s", signature)
        return signature


__all__ = ["AirdropFunder"]
