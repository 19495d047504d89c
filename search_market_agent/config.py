from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from solders.pubkey import Pubkey

from .errors import ConfigError

LAMPORTS_PER_TOKEN = 1_000_000_000


class Settings(BaseSettings):
    """运行时配置模型，从环境变量或 .env 加载。

    本类集中管理 agent 所需的外部依赖配置，例如账本 RPC/WebSocket
    端点、搜索服务凭证、卖单价格梯度以及日志级别等。
    """

    # 本地数据目录，用于存放结算流水
    data_dir: Path = Path("data")

    # 账本 RPC；ws_endpoint 缺省时由 endpoint 推导
    endpoint: Optional[str] = None
    ws_endpoint: Optional[str] = None
    commitment: str = "confirmed"
    program_id: Optional[str] = None

    # 仅测试网可用，主网应关闭
    airdrop_endpoint: Optional[str] = None
    airdrop_enabled: bool = True
    airdrop_threshold_sol: float = 0.01
    airdrop_amount_sol: float = 1.0

    # Solana CLI 格式的 JSON 密钥文件；缺省时每次启动生成新钱包
    wallet_path: Optional[Path] = None

    azure_subscription_key: Optional[str] = None
    search_endpoint: str = "https://api.bing.microsoft.com/v7.0/search"
    search_max_results: int = 10
    search_timeout_seconds: float = 10.0

    bugsnag_api_key: Optional[str] = None
    port: int = 8080

    # 卖单价格梯度（lamports）：price = base - step * index
    base_price_lamports: int = LAMPORTS_PER_TOKEN // 5
    price_step_lamports: int = LAMPORTS_PER_TOKEN // 100
    deposit_quantity: int = 1
    order_quantity: int = 1

    dedupe_candidates: bool = True
    attempt_cache_size: int = 1024

    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_prefix="", extra="ignore")

    @model_validator(mode="after")
    def _check_price_ladder(self) -> "Settings":
        if self.search_max_results < 1:
            raise ValueError("search_max_results must be at least 1")
        lowest = self.base_price_lamports - self.price_step_lamports * (self.search_max_results - 1)
        if self.price_step_lamports <= 0 or lowest <= 0:
            raise ValueError(
                "price ladder must stay positive and strictly decreasing for every "
                f"index below search_max_results={self.search_max_results}"
            )
        return self

    @classmethod
    def load(cls, env_file: Optional[str | Path] = None, overrides: Optional[dict[str, Any]] = None) -> "Settings":
        """Load settings, allowing an optional .env override and programmatic overrides.

        Raises:
            ConfigError: 环境变量或 .env 中的值未通过校验。
        """
        kwargs: dict[str, Any] = {}
        if env_file:
            kwargs["_env_file"] = env_file
        if overrides:
            kwargs.update(overrides)
        try:
            return cls(**kwargs)
        except ValidationError as exc:
            raise ConfigError(f"invalid configuration: {exc}") from exc

    def require_runtime(self) -> None:
        """校验 `run` 所需的配置项，缺失时抛出 ConfigError。"""

        missing = [
            name
            for name in ("endpoint", "program_id", "azure_subscription_key")
            if not getattr(self, name)
        ]
        if missing:
            raise ConfigError(f"missing required configuration: {', '.join(missing).upper()}")
        _ = self.program_pubkey

    @property
    def program_pubkey(self) -> Pubkey:
        if not self.program_id:
            raise ConfigError("PROGRAM_ID is not set")
        try:
            return Pubkey.from_string(self.program_id)
        except ValueError as exc:
            raise ConfigError(f"PROGRAM_ID is not a valid address: {self.program_id}") from exc

    @property
    def resolved_ws_endpoint(self) -> str:
        """返回 WebSocket 端点；未显式配置时将 http(s) 替换为 ws(s)。"""

        if self.ws_endpoint:
            return self.ws_endpoint
        if not self.endpoint:
            raise ConfigError("ENDPOINT is not set")
        if self.endpoint.startswith("https://"):
            return "wss://" + self.endpoint[len("https://"):]
        if self.endpoint.startswith("http://"):
            return "ws://" + self.endpoint[len("http://"):]
        return self.endpoint

    @property
    def resolved_airdrop_endpoint(self) -> Optional[str]:
        return self.airdrop_endpoint or self.endpoint

    def ensure_data_dir(self) -> Path:
        """确保 data_dir 存在并返回绝对路径。"""

        path = self.data_dir
        if not path.is_absolute():
            path = Path(".").resolve() / path
        path.mkdir(parents=True, exist_ok=True)
        return path
