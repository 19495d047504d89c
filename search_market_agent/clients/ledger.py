"""Solana 账本 RPC 客户端封装。"""

from __future__ import annotations

import logging
from typing import Sequence

import httpx
from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment
from solana.rpc.core import RPCException, UnconfirmedTxError
from solana.rpc.types import TxOpts
from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction

from ..errors import LedgerError, TransactionFailed

logger = logging.getLogger(__name__)

_RPC_ERRORS = (SolanaRpcException, RPCException, UnconfirmedTxError, httpx.HTTPError)


class LedgerClient:
    """账本客户端。

    对 `AsyncClient` 做一层薄封装：统一手续费钱包、提交后阻塞等待确认，
    并把 RPC 层异常统一转换为 :class:`LedgerError`。手续费钱包在进程
    启动时创建一次，由调用方注入。
    """

    def __init__(self, endpoint: str, payer: Keypair, commitment: str = "confirmed"):
        self.endpoint = endpoint
        self.payer = payer
        self.commitment = Commitment(commitment)
        self._rpc = AsyncClient(endpoint, commitment=self.commitment)

    @property
    def payer_pubkey(self) -> Pubkey:
        return self.payer.pubkey()

    async def latest_blockhash(self) -> Hash:
        """获取最近区块哈希，供同一批交易共享。"""
        try:
            resp = await self._rpc.get_latest_blockhash()
        except _RPC_ERRORS as exc:
            raise LedgerError(f"get_latest_blockhash failed: {exc}") from exc
        return resp.value.blockhash

    async def minimum_balance(self, size: int) -> int:
        """查询指定字节数账户的免租最低余额（lamports）。"""
        try:
            resp = await self._rpc.get_minimum_balance_for_rent_exemption(size)
        except _RPC_ERRORS as exc:
            raise LedgerError(f"get_minimum_balance_for_rent_exemption({size}) failed: {exc}") from exc
        return resp.value

    async def get_balance(self, pubkey: Pubkey) -> int:
        try:
            resp = await self._rpc.get_balance(pubkey)
        except _RPC_ERRORS as exc:
            raise LedgerError(f"get_balance({pubkey}) failed: {exc}") from exc
        return resp.value

    async def submit(
        self,
        instructions: Sequence[Instruction],
        *,
        signers: Sequence[Keypair] = (),
        blockhash: Hash,
    ) -> str:
        """签名、提交交易并阻塞直到账本确认。

        Args:
            instructions: 按顺序执行的指令。
            signers: 除手续费钱包外的额外签名者（通常为新建账户自身）。
            blockhash: 调用方共享的最近区块哈希。

        Returns:
            已确认交易的 base58 签名。

        Raises:
            LedgerError: 提交或确认过程中 RPC 失败。
            TransactionFailed: 交易已确认但执行出错。
        """
        tx = Transaction.new_signed_with_payer(
            list(instructions),
            self.payer.pubkey(),
            [self.payer, *signers],
            blockhash,
        )
        try:
            resp = await self._rpc.send_raw_transaction(
                bytes(tx), opts=TxOpts(skip_confirmation=True, preflight_commitment=self.commitment)
            )
            signature = resp.value
            await self._confirm(signature)
        except _RPC_ERRORS as exc:
            raise LedgerError(f"transaction submission failed: {exc}") from exc
        logger.debug("confirmed %s (%d instructions)", signature, len(instructions))
        return str(signature)

    async def request_airdrop(self, pubkey: Pubkey, lamports: int) -> str:
        """请求空投并等待确认（仅非生产网络可用）。"""
        try:
            resp = await self._rpc.request_airdrop(pubkey, lamports)
            signature = resp.value
            await self._confirm(signature)
        except _RPC_ERRORS as exc:
            raise LedgerError(f"airdrop to {pubkey} failed: {exc}") from exc
        return str(signature)

    async def _confirm(self, signature: Signature) -> None:
        resp = await self._rpc.confirm_transaction(signature, self.commitment)
        status = resp.value[0] if resp.value else None
        if status is not None and status.err is not None:
            raise TransactionFailed(str(signature), status.err)

    async def close(self) -> None:
        """关闭底层 HTTP 连接。"""
        await self._rpc.close()


__all__ = ["LedgerClient"]
