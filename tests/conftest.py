"""测试共用的假协作者：账本、搜索服务与 Bugsnag 客户端。"""

from __future__ import annotations

from typing import Callable, List, Optional, Sequence

import pytest
from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from search_market_agent.errors import LedgerError
from search_market_agent.types import SearchCandidate


class FakeLedger:
    """记录每次调用的内存账本；``fail_on`` 返回 True 的提交会抛出 LedgerError。"""

    def __init__(self, fail_on: Optional[Callable[[List[Instruction]], bool]] = None, balance: int = 10**10):
        self.wallet = Keypair()
        self.fail_on = fail_on
        self.balance = balance
        self.submits: list[tuple[list[Instruction], list[Keypair]]] = []
        self.failed_submits: list[list[Instruction]] = []
        self.calls: list[str] = []
        self.airdrops: list[int] = []

    @property
    def payer_pubkey(self) -> Pubkey:
        return self.wallet.pubkey()

    async def latest_blockhash(self) -> Hash:
        self.calls.append("latest_blockhash")
        return Hash.default()

    async def minimum_balance(self, size: int) -> int:
        self.calls.append("minimum_balance")
        return 890_880 + size * 6_960

    async def get_balance(self, pubkey: Pubkey) -> int:
        self.calls.append("get_balance")
        return self.balance

    async def request_airdrop(self, pubkey: Pubkey, lamports: int) -> str:
        self.calls.append("request_airdrop")
        self.airdrops.append(lamports)
        self.balance += lamports
        return "airdrop-sig"

    async def submit(
        self,
        instructions: Sequence[Instruction],
        *,
        signers: Sequence[Keypair] = (),
        blockhash: Hash,
    ) -> str:
        self.calls.append("submit")
        instructions = list(instructions)
        if self.fail_on is not None and self.fail_on(instructions):
            self.failed_submits.append(instructions)
            raise LedgerError("simulated submission failure")
        self.submits.append((instructions, list(signers)))
        return f"sig-{len(self.submits)}"

    def program_instructions(self, program_id: Pubkey) -> list[Instruction]:
        return [ix for instructions, _ in self.submits for ix in instructions if ix.program_id == program_id]


class FakeSearch:
    def __init__(self, candidates: Optional[list[SearchCandidate]] = None, error: Optional[Exception] = None):
        self.candidates = candidates or []
        self.error = error
        self.queries: list[str] = []

    async def search(self, query: str) -> list[SearchCandidate]:
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return list(self.candidates)


class FakeBugsnag:
    def __init__(self) -> None:
        self.notified: list[tuple[BaseException, dict]] = []

    def notify(self, exc: BaseException, metadata: Optional[dict] = None) -> None:
        self.notified.append((exc, metadata or {}))


def make_candidates(count: int) -> list[SearchCandidate]:
    return [
        SearchCandidate(url=f"https://example.com/{i}", name=f"Result {i}", snippet=f"snippet {i}")
        for i in range(count)
    ]


@pytest.fixture
def program_id() -> Pubkey:
    return Pubkey.new_unique()


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def bugsnag() -> FakeBugsnag:
    return FakeBugsnag()
