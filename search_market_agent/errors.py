"""Agent 异常层级。

各组件只在自身边界抛出这些异常，捕获点只有两处：单个通知
（一个市场的解析）与单个候选结果的结算。
"""

from __future__ import annotations

from typing import Optional


class AgentError(Exception):
    """所有 agent 异常的基类。"""


class ConfigError(AgentError):
    """启动时缺少必需配置或配置自相矛盾。"""


class CodecError(AgentError):
    """二进制载荷无法编码或解码（截断、未知标签、越界整数等）。"""


class DerivationError(AgentError):
    """种子组合无法推导出合法的程序派生地址。"""


class SearchError(AgentError):
    """搜索服务请求失败或响应结构不符合预期。"""


class LedgerError(AgentError):
    """账本 RPC 调用失败。"""


class TransactionFailed(LedgerError):
    """交易已被确认，但执行结果带有错误。"""

    def __init__(self, signature: str, err: object):
        super().__init__(f"transaction {signature} failed: {err}")
        self.signature = signature
        self.err = err


class SettlementError(AgentError):
    """单个候选结果的结算在某一步失败。

    Attributes:
        market: 市场账户地址（base58）。
        candidate_index: 候选结果在搜索结果中的位置。
        step: 失败时所处的步骤名。
    """

    def __init__(self, market: str, candidate_index: int, step: str, cause: Optional[BaseException] = None):
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"settlement of {market}#{candidate_index} failed at {step}{detail}")
        self.market = market
        self.candidate_index = candidate_index
        self.step = step
        self.cause = cause


__all__ = [
    "AgentError",
    "ConfigError",
    "CodecError",
    "DerivationError",
    "SearchError",
    "LedgerError",
    "TransactionFailed",
    "SettlementError",
]
