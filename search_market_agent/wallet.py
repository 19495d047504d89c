"""手续费钱包：从 Solana CLI 格式的密钥文件加载，或在启动时生成。"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from solders.keypair import Keypair

from .errors import ConfigError

logger = logging.getLogger(__name__)


def load_wallet(path: Optional[Path] = None) -> Keypair:
    """加载钱包；未配置路径时生成一次性钱包（需依赖空投获得余额）。

    Raises:
        ConfigError: 密钥文件不存在或格式错误。
    """
    if path is None:
        wallet = Keypair()
        logger.info("Wallet public key: %s (ephemeral)", wallet.pubkey())
        return wallet
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        wallet = Keypair.from_bytes(bytes(raw))
    except (OSError, ValueError, TypeError) as exc:
        raise ConfigError(f"cannot load wallet keypair from {path}: {exc}") from exc
    logger.info("Wallet public key: %s", wallet.pubkey())
    return wallet


def write_wallet(path: Path, wallet: Optional[Keypair] = None) -> Keypair:
    """以 Solana CLI 兼容的 JSON 整数数组写出密钥。"""
    wallet = wallet or Keypair()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(list(bytes(wallet))), encoding="utf-8")
    return wallet


__all__ = ["load_wallet", "write_wallet"]
