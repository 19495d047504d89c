from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Optional, Union

from solders.pubkey import Pubkey

# 账本上的“未设置”地址（全零），用于 best_result 与尚未创建的 mint。
UNSET_ADDRESS = Pubkey.default()


class AccountKind(IntEnum):
    """程序账户数据首字节的类型标记。"""

    MARKET = 0
    RESULT = 1
    ORDER = 2


class InstructionKind(IntEnum):
    """程序指令数据首字节的类型标记。"""

    CREATE_RESULT = 0
    DEPOSIT = 1
    CREATE_ORDER = 2


class OrderSide(IntEnum):
    BUY = 0
    SELL = 1


@dataclass
class SearchCandidate:
    """搜索服务返回的单条候选结果。

    Attributes:
        url: 结果页面地址。
        name: 页面标题。
        snippet: 搜索摘要。
    """

    url: str
    name: str
    snippet: str


@dataclass
class MarketRecord:
    """链上搜索市场账户。

    Attributes:
        search_string: 市场对应的搜索问题文本。
        best_result: 获胜结果账户地址；为 ``UNSET_ADDRESS`` 时市场尚未决出。
    """

    search_string: str
    best_result: Pubkey = UNSET_ADDRESS

    @property
    def decided(self) -> bool:
        return self.best_result != UNSET_ADDRESS


@dataclass
class ResultRecord:
    """某个市场下一条候选结果的链上账户。

    Attributes:
        search_market: 所属市场账户地址。
        url: 结果页面地址。
        name: 页面标题。
        snippet: 搜索摘要。
        yes_mint: YES 份额 mint；创建前为 ``UNSET_ADDRESS``。
        no_mint: NO 份额 mint；创建前为 ``UNSET_ADDRESS``。
        bump_seed: mint authority 派生地址的 bump。
    """

    search_market: Pubkey
    url: str
    name: str
    snippet: str
    yes_mint: Pubkey = UNSET_ADDRESS
    no_mint: Pubkey = UNSET_ADDRESS
    bump_seed: int = 0


@dataclass
class OrderRecord:
    """链上挂单账户。

    Attributes:
        search_market: 所属市场。
        result: 挂单对应的结果账户。
        sol_account: 收取 lamports 的钱包。
        token_account: 卖出份额所在的持仓账户。
        side: 买卖方向。
        price: 每份价格（lamports）。
        quantity: 份数。
        escrow_bump_seed: escrow 派生地址的 bump。
        creation_slot: 创建时的 slot，由程序写入，客户端填 0。
        execution_authority: 允许撮合该挂单的账户。
    """

    search_market: Pubkey
    result: Pubkey
    sol_account: Pubkey
    token_account: Pubkey
    side: OrderSide
    price: int
    quantity: int
    escrow_bump_seed: int
    creation_slot: int
    execution_authority: Pubkey


AccountRecord = Union[MarketRecord, ResultRecord, OrderRecord]


@dataclass
class CreateResult:
    url: str
    name: str
    snippet: str
    bump_seed: int


@dataclass
class Deposit:
    quantity: int


@dataclass
class CreateOrder:
    side: OrderSide
    price: int
    quantity: int
    escrow_bump_seed: int


InstructionPayload = Union[CreateResult, Deposit, CreateOrder]


class SettlementState(str, Enum):
    PENDING = "pending"
    CREATED = "created"
    RESULT_INITIALIZED = "result_initialized"
    FUNDED = "funded"
    ORDER_PLACED = "order_placed"
    FAILED = "failed"


@dataclass
class SettlementRecord:
    """单个候选结果的结算进度。

    状态依次推进 pending → created（账户已创建）→ result_initialized →
    funded → order_placed；
    任一步失败则进入 failed，``last_confirmed`` 保留最后一个已确认的状态，
    此前创建的账户地址保留在记录中，便于人工回收。

    Attributes:
        market: 市场账户地址（base58）。
        candidate_index: 候选结果在搜索结果中的位置。
        url: 候选结果地址。
        state: 当前状态。
        last_confirmed: 失败前最后一个已确认状态。
        accounts: 已创建或派生的账户，键为角色名（result/yes_mint/...）。
        signatures: 已确认交易签名，键为步骤名。
        price: 卖单价格（lamports）。
        error: 失败原因。
        updated_at: 最近一次状态变化时间。
    """

    market: str
    candidate_index: int
    url: str
    state: SettlementState = SettlementState.PENDING
    last_confirmed: Optional[SettlementState] = None
    accounts: dict[str, str] = field(default_factory=dict)
    signatures: dict[str, str] = field(default_factory=dict)
    price: Optional[int] = None
    error: Optional[str] = None
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def advance(self, state: SettlementState) -> None:
        self.state = state
        self.last_confirmed = state
        self.updated_at = datetime.now(timezone.utc)

    def fail(self, error: str) -> None:
        self.state = SettlementState.FAILED
        self.error = error
        self.updated_at = datetime.now(timezone.utc)

    def to_dict(self) -> dict[str, object]:
        return {
            "market": self.market,
            "candidate_index": self.candidate_index,
            "url": self.url,
            "state": self.state.value,
            "last_confirmed": self.last_confirmed.value if self.last_confirmed else None,
            "accounts": dict(self.accounts),
            "signatures": dict(self.signatures),
            "price": self.price,
            "error": self.error,
            "updated_at": self.updated_at.isoformat(),
        }
