"""程序派生地址（PDA）推导。

链上程序与本 agent 必须对同一组种子得到逐位相同的地址，否则指令会被
拒绝。地址由 solders 的 ``find_program_address`` 计算；种子数量与长度
先在这里校验，越界种子会让底层库直接 panic 而不是抛出异常。
"""

from __future__ import annotations

from typing import Sequence

from solders.pubkey import Pubkey

from ..errors import DerivationError

MAX_SEEDS = 16
MAX_SEED_LEN = 32

MINT_AUTHORITY_SEED = b"mint_authority"
TOKEN_ESCROW_SEED = b"token_escrow"


def derive(seeds: Sequence[bytes], program_id: Pubkey) -> tuple[Pubkey, int]:
    """推导程序派生地址与 bump。

    Args:
        seeds: 有序种子字节串，不含 bump。
        program_id: 拥有该地址的程序。

    Returns:
        ``(address, bump_seed)`` 二元组，bump 取值 0-255。

    Raises:
        DerivationError: 种子数量或长度越界。
    """
    if len(seeds) >= MAX_SEEDS:
        raise DerivationError(f"too many seeds: {len(seeds)} (max {MAX_SEEDS - 1} plus bump)")
    for seed in seeds:
        if len(seed) > MAX_SEED_LEN:
            raise DerivationError(f"seed longer than {MAX_SEED_LEN} bytes: {seed!r}")

    return Pubkey.find_program_address([bytes(seed) for seed in seeds], program_id)


def mint_authority(program_id: Pubkey) -> tuple[Pubkey, int]:
    """所有结果共享的 mint authority 地址。"""
    return derive([MINT_AUTHORITY_SEED], program_id)


def order_escrow(order: Pubkey, program_id: Pubkey) -> tuple[Pubkey, int]:
    """某笔挂单专属的 token escrow 地址。"""
    return derive([TOKEN_ESCROW_SEED, bytes(order)], program_id)


__all__ = ["derive", "mint_authority", "order_escrow", "MINT_AUTHORITY_SEED", "TOKEN_ESCROW_SEED"]
