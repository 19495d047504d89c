"""单个候选结果的链上结算流程。

每个候选结果依次完成：

1. 推导 mint authority；
2. 并发创建结果账户与 YES/NO 两个 mint 账户（全部确认后才继续）；
3. 提交 CreateResult，初始化 mint 并写入结果账户；
4. 同一笔交易中创建并初始化两个持仓账户，随后 Deposit 各铸造一份；
5. 推导挂单 escrow，创建挂单账户并提交 CreateOrder 卖出 YES 份额。

后一步引用的账户只有在前一步确认后才保证存在，因此各步严格串行。
任一步失败即放弃该候选的剩余步骤，已创建的账户不回滚，地址记录在
结算流水中。不做自动重试。
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional, Protocol, Sequence

from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from spl.token.constants import ACCOUNT_LEN, MINT_LEN, TOKEN_PROGRAM_ID

from ..errors import SettlementError
from ..program.instructions import (
    build_create_account_instruction,
    build_create_order_instruction,
    build_create_result_instruction,
    build_deposit_instruction,
    build_init_holding_instruction,
)
from ..program.layouts import record_size
from ..program.pda import mint_authority, order_escrow
from ..storage import SettlementJournal
from ..types import (
    CreateOrder,
    CreateResult,
    Deposit,
    OrderRecord,
    OrderSide,
    ResultRecord,
    SearchCandidate,
    SettlementRecord,
    SettlementState,
)
from .pricing import ladder_price

logger = logging.getLogger(__name__)


class SettlementLedger(Protocol):
    @property
    def payer_pubkey(self) -> Pubkey: ...

    async def latest_blockhash(self) -> Hash: ...

    async def minimum_balance(self, size: int) -> int: ...

    async def submit(
        self,
        instructions: Sequence[Instruction],
        *,
        signers: Sequence[Keypair] = (),
        blockhash: Hash,
    ) -> str: ...


class TransactionSequencer:
    """按依赖顺序为候选结果提交交易。

    Args:
        ledger: 账本客户端，手续费钱包由其持有。
        program_id: 搜索市场程序地址。
        base_price: 第一名候选的卖单价格（lamports）。
        price_step: 相邻名次的价差（lamports）。
        deposit_quantity: Deposit 铸造的份数。
        order_quantity: 卖单份数。
        journal: 结算流水；为空时不落盘。
        new_keypair: 新账户密钥生成函数，测试中可替换。
    """

    def __init__(
        self,
        ledger: SettlementLedger,
        program_id: Pubkey,
        *,
        base_price: int,
        price_step: int,
        deposit_quantity: int = 1,
        order_quantity: int = 1,
        journal: Optional[SettlementJournal] = None,
        new_keypair: Callable[[], Keypair] = Keypair,
    ):
        self.ledger = ledger
        self.program_id = program_id
        self.base_price = base_price
        self.price_step = price_step
        self.deposit_quantity = deposit_quantity
        self.order_quantity = order_quantity
        self.journal = journal
        self.new_keypair = new_keypair

    async def settle(self, market: Pubkey, candidate_index: int, candidate: SearchCandidate) -> SettlementRecord:
        """为一个候选结果执行完整结算。

        Returns:
            状态为 ``order_placed`` 的结算记录。

        Raises:
            SettlementError: 任一步失败；记录以 failed 状态写入流水。
        """
        record = SettlementRecord(market=str(market), candidate_index=candidate_index, url=candidate.url)
        step = "price"
        try:
            record.price = ladder_price(candidate_index, self.base_price, self.price_step)

            step = "derive_mint_authority"
            authority, bump = mint_authority(self.program_id)
            record.accounts["mint_authority"] = str(authority)

            step = "create_accounts"
            blockhash = await self.ledger.latest_blockhash()
            result, yes_mint, no_mint = await self._create_result_accounts(
                record, market, candidate, bump, blockhash
            )
            self._transition(record, SettlementState.CREATED)

            step = "create_result"
            payload = CreateResult(url=candidate.url, name=candidate.name, snippet=candidate.snippet, bump_seed=bump)
            signature = await self.ledger.submit(
                [
                    build_create_result_instruction(
                        self.program_id,
                        payload,
                        result=result,
                        market=market,
                        yes_mint=yes_mint,
                        no_mint=no_mint,
                        mint_authority=authority,
                    )
                ],
                blockhash=blockhash,
            )
            record.signatures[step] = signature
            logger.info("Result signature: %s", signature)
            self._transition(record, SettlementState.RESULT_INITIALIZED)

            step = "deposit"
            yes_holding, signature = await self._deposit(
                record, market, result, authority, yes_mint, no_mint, blockhash
            )
            record.signatures[step] = signature
            logger.info("Deposit signature: %s", signature)
            self._transition(record, SettlementState.FUNDED)

            step = "create_order"
            signature = await self._place_order(
                record, market, result, yes_holding, yes_mint, record.price, blockhash
            )
            record.signatures[step] = signature
            logger.info("Yes order signature: %s", signature)
            self._transition(record, SettlementState.ORDER_PLACED)
        except Exception as exc:  # noqa: BLE001
            record.fail(f"{step}: {exc}")
            self._write(record)
            raise SettlementError(str(market), candidate_index, step, exc) from exc
        return record

    async def _create_result_accounts(
        self,
        record: SettlementRecord,
        market: Pubkey,
        candidate: SearchCandidate,
        bump: int,
        blockhash: Hash,
    ) -> tuple[Pubkey, Pubkey, Pubkey]:
        """并发创建结果账户与两个 mint 账户，三笔交易全部确认后返回地址。"""
        result_kp, yes_mint_kp, no_mint_kp = self.new_keypair(), self.new_keypair(), self.new_keypair()
        record.accounts.update(
            result=str(result_kp.pubkey()),
            yes_mint=str(yes_mint_kp.pubkey()),
            no_mint=str(no_mint_kp.pubkey()),
        )
        # 结果记录只用于确定账户大小，mint 此时尚未创建。
        result_size = record_size(
            ResultRecord(
                search_market=market,
                url=candidate.url,
                name=candidate.name,
                snippet=candidate.snippet,
                bump_seed=bump,
            )
        )
        result_rent, mint_rent = await asyncio.gather(
            self.ledger.minimum_balance(result_size),
            self.ledger.minimum_balance(MINT_LEN),
        )
        await asyncio.gather(
            self._create_account(result_kp, result_rent, result_size, self.program_id, blockhash),
            self._create_account(yes_mint_kp, mint_rent, MINT_LEN, TOKEN_PROGRAM_ID, blockhash),
            self._create_account(no_mint_kp, mint_rent, MINT_LEN, TOKEN_PROGRAM_ID, blockhash),
        )
        return result_kp.pubkey(), yes_mint_kp.pubkey(), no_mint_kp.pubkey()

    async def _create_account(self, keypair: Keypair, lamports: int, space: int, owner: Pubkey, blockhash: Hash) -> str:
        instruction = build_create_account_instruction(
            self.ledger.payer_pubkey, keypair.pubkey(), lamports, space, owner
        )
        return await self.ledger.submit([instruction], signers=[keypair], blockhash=blockhash)

    async def _deposit(
        self,
        record: SettlementRecord,
        market: Pubkey,
        result: Pubkey,
        authority: Pubkey,
        yes_mint: Pubkey,
        no_mint: Pubkey,
        blockhash: Hash,
    ) -> tuple[Pubkey, str]:
        """创建并初始化两个持仓账户，随后在同一笔交易中 Deposit。"""
        wallet = self.ledger.payer_pubkey
        holding_rent = await self.ledger.minimum_balance(ACCOUNT_LEN)
        yes_holding_kp, no_holding_kp = self.new_keypair(), self.new_keypair()
        yes_holding, no_holding = yes_holding_kp.pubkey(), no_holding_kp.pubkey()
        record.accounts.update(yes_holding=str(yes_holding), no_holding=str(no_holding))

        instructions = [
            build_create_account_instruction(wallet, yes_holding, holding_rent, ACCOUNT_LEN, TOKEN_PROGRAM_ID),
            build_init_holding_instruction(yes_holding, yes_mint, wallet),
            build_create_account_instruction(wallet, no_holding, holding_rent, ACCOUNT_LEN, TOKEN_PROGRAM_ID),
            build_init_holding_instruction(no_holding, no_mint, wallet),
            build_deposit_instruction(
                self.program_id,
                Deposit(quantity=self.deposit_quantity),
                market=market,
                result=result,
                wallet=wallet,
                mint_authority=authority,
                yes_mint=yes_mint,
                yes_holding=yes_holding,
                no_mint=no_mint,
                no_holding=no_holding,
            ),
        ]
        signature = await self.ledger.submit(
            instructions, signers=[yes_holding_kp, no_holding_kp], blockhash=blockhash
        )
        return yes_holding, signature

    async def _place_order(
        self,
        record: SettlementRecord,
        market: Pubkey,
        result: Pubkey,
        yes_holding: Pubkey,
        yes_mint: Pubkey,
        price: int,
        blockhash: Hash,
    ) -> str:
        """以 YES 持仓创建卖单；escrow 由挂单自身地址派生。"""
        wallet = self.ledger.payer_pubkey
        order_kp = self.new_keypair()
        order = order_kp.pubkey()
        escrow, escrow_bump = order_escrow(order, self.program_id)
        record.accounts.update(order=str(order), escrow=str(escrow))
        order_size = record_size(
            OrderRecord(
                search_market=market,
                result=result,
                sol_account=wallet,
                token_account=yes_holding,
                side=OrderSide.SELL,
                price=price,
                quantity=self.order_quantity,
                escrow_bump_seed=escrow_bump,
                creation_slot=0,
                execution_authority=wallet,
            )
        )
        order_rent = await self.ledger.minimum_balance(order_size)
        payload = CreateOrder(
            side=OrderSide.SELL,
            price=price,
            quantity=self.order_quantity,
            escrow_bump_seed=escrow_bump,
        )
        instructions = [
            build_create_account_instruction(wallet, order, order_rent, order_size, self.program_id),
            build_create_order_instruction(
                self.program_id,
                payload,
                order=order,
                market=market,
                result=result,
                wallet=wallet,
                token_account=yes_holding,
                mint=yes_mint,
                escrow=escrow,
            ),
        ]
        return await self.ledger.submit(instructions, signers=[order_kp], blockhash=blockhash)

    def _transition(self, record: SettlementRecord, state: SettlementState) -> None:
        record.advance(state)
        self._write(record)

    def _write(self, record: SettlementRecord) -> None:
        # 流水只供人工排查；写盘失败不影响链上步骤的推进。
        if self.journal is None:
            return
        try:
            self.journal.record(record)
        except OSError:
            logger.exception(
                "journal write failed for %s#%d (%s)", record.market, record.candidate_index, record.state.value
            )


__all__ = ["TransactionSequencer", "SettlementLedger"]
