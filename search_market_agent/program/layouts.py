"""程序指令与账户数据的二进制布局（borsh 编码）。

所有载荷都以一个字节的类型标记开头，随后按声明顺序排列字段：
整数为小端定长，字符串为 u32 长度前缀的 UTF-8，地址为 32 字节原始值。
字段顺序或宽度与链上程序有任何出入都会导致指令被拒绝。
"""

from __future__ import annotations

from dataclasses import fields
from typing import Any, Type, TypeVar

import construct
from borsh_construct import CStruct, String, U8, U64
from solders.pubkey import Pubkey

from ..errors import CodecError
from ..types import (
    AccountKind,
    AccountRecord,
    CreateOrder,
    CreateResult,
    Deposit,
    InstructionKind,
    InstructionPayload,
    MarketRecord,
    OrderRecord,
    OrderSide,
    ResultRecord,
)

T = TypeVar("T")


class _PubkeyAdapter(construct.Adapter):
    """32 字节原始地址 <-> solders ``Pubkey``。"""

    def __init__(self) -> None:
        super().__init__(construct.Bytes(32))

    def _decode(self, obj: bytes, context: Any, path: Any) -> Pubkey:
        return Pubkey(obj)

    def _encode(self, obj: Pubkey, context: Any, path: Any) -> bytes:
        return bytes(obj)


Address = _PubkeyAdapter()

MARKET_LAYOUT = CStruct(
    "search_string" / String,
    "best_result" / Address,
)

RESULT_LAYOUT = CStruct(
    "search_market" / Address,
    "url" / String,
    "name" / String,
    "snippet" / String,
    "yes_mint" / Address,
    "no_mint" / Address,
    "bump_seed" / U8,
)

ORDER_LAYOUT = CStruct(
    "search_market" / Address,
    "result" / Address,
    "sol_account" / Address,
    "token_account" / Address,
    "side" / U8,
    "price" / U64,
    "quantity" / U64,
    "escrow_bump_seed" / U8,
    "creation_slot" / U64,
    "execution_authority" / Address,
)

CREATE_RESULT_LAYOUT = CStruct(
    "url" / String,
    "name" / String,
    "snippet" / String,
    "bump_seed" / U8,
)

DEPOSIT_LAYOUT = CStruct(
    "quantity" / U64,
)

CREATE_ORDER_LAYOUT = CStruct(
    "side" / U8,
    "price" / U64,
    "quantity" / U64,
    "escrow_bump_seed" / U8,
)

_ACCOUNTS: dict[AccountKind, tuple[construct.Construct, type]] = {
    AccountKind.MARKET: (MARKET_LAYOUT, MarketRecord),
    AccountKind.RESULT: (RESULT_LAYOUT, ResultRecord),
    AccountKind.ORDER: (ORDER_LAYOUT, OrderRecord),
}

_INSTRUCTIONS: dict[InstructionKind, tuple[construct.Construct, type]] = {
    InstructionKind.CREATE_RESULT: (CREATE_RESULT_LAYOUT, CreateResult),
    InstructionKind.DEPOSIT: (DEPOSIT_LAYOUT, Deposit),
    InstructionKind.CREATE_ORDER: (CREATE_ORDER_LAYOUT, CreateOrder),
}

_ACCOUNT_KINDS = {cls: kind for kind, (_, cls) in _ACCOUNTS.items()}
_INSTRUCTION_KINDS = {cls: kind for kind, (_, cls) in _INSTRUCTIONS.items()}

# construct 在编码/解码时可能抛出的异常；UnicodeError 与 OrderSide 越界都是 ValueError。
_CODEC_ERRORS = (construct.ConstructError, ValueError, TypeError)


def is_blank(data: bytes) -> bool:
    """账户数据是否全为零（程序尚未写入）。"""
    return not any(data)


def account_kind(data: bytes) -> AccountKind:
    """读取账户数据首字节的类型标记。

    Raises:
        CodecError: 数据为空或标记未知。
    """
    if not data:
        raise CodecError("empty account data")
    try:
        return AccountKind(data[0])
    except ValueError as exc:
        raise CodecError(f"unknown account kind {data[0]}") from exc


def encode_account(record: AccountRecord) -> bytes:
    """将账户记录编码为链上布局，首字节为 ``AccountKind``。"""
    kind = _ACCOUNT_KINDS.get(type(record))
    if kind is None:
        raise CodecError(f"not an account record: {type(record).__name__}")
    layout, _ = _ACCOUNTS[kind]
    return bytes([kind]) + _build(layout, record)


def decode_account(data: bytes) -> AccountRecord:
    """从原始账户数据解码记录。

    账户分配的空间可能大于记录本身，因此允许尾部多余字节；截断、
    未知类型标记或非法 UTF-8 一律抛出 ``CodecError``。
    """
    kind = account_kind(data)
    layout, cls = _ACCOUNTS[kind]
    record, _ = _parse(layout, cls, bytes(data[1:]))
    return record


def encode_instruction(payload: InstructionPayload) -> bytes:
    """将指令载荷编码为程序指令数据，首字节为 ``InstructionKind``。"""
    kind = _INSTRUCTION_KINDS.get(type(payload))
    if kind is None:
        raise CodecError(f"not an instruction payload: {type(payload).__name__}")
    layout, _ = _INSTRUCTIONS[kind]
    return bytes([kind]) + _build(layout, payload)


def decode_instruction(data: bytes) -> InstructionPayload:
    """解码指令数据；与账户不同，指令不允许尾部多余字节。"""
    if not data:
        raise CodecError("empty instruction data")
    try:
        kind = InstructionKind(data[0])
    except ValueError as exc:
        raise CodecError(f"unknown instruction tag {data[0]}") from exc
    layout, cls = _INSTRUCTIONS[kind]
    payload, consumed = _parse(layout, cls, bytes(data[1:]))
    if consumed != len(data) - 1:
        raise CodecError(f"{cls.__name__}: {len(data) - 1 - consumed} trailing bytes")
    return payload


def record_size(record: AccountRecord) -> int:
    """账户记录编码后的字节数，用于分配账户空间。"""
    return len(encode_account(record))


def _build(layout: construct.Construct, obj: Any) -> bytes:
    values = {f.name: getattr(obj, f.name) for f in fields(obj)}
    try:
        return layout.build(values)
    except _CODEC_ERRORS as exc:
        raise CodecError(f"cannot encode {type(obj).__name__}: {exc}") from exc


def _parse(layout: construct.Construct, cls: Type[T], body: bytes) -> tuple[T, int]:
    try:
        parsed = layout.parse(body)
        values = {f.name: parsed[f.name] for f in fields(cls)}
        if "side" in values:
            values["side"] = OrderSide(values["side"])
        consumed = len(layout.build(values))
    except _CODEC_ERRORS as exc:
        raise CodecError(f"cannot decode {cls.__name__}: {exc}") from exc
    return cls(**values), consumed


__all__ = [
    "MARKET_LAYOUT",
    "RESULT_LAYOUT",
    "ORDER_LAYOUT",
    "CREATE_RESULT_LAYOUT",
    "DEPOSIT_LAYOUT",
    "CREATE_ORDER_LAYOUT",
    "is_blank",
    "account_kind",
    "encode_account",
    "decode_account",
    "encode_instruction",
    "decode_instruction",
    "record_size",
]
