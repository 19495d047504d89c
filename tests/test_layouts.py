"""账户与指令二进制布局的单元测试。"""

from __future__ import annotations

import pytest
from solders.pubkey import Pubkey

from search_market_agent.errors import CodecError
from search_market_agent.program.layouts import (
    account_kind,
    decode_account,
    decode_instruction,
    encode_account,
    encode_instruction,
    is_blank,
    record_size,
)
from search_market_agent.types import (
    UNSET_ADDRESS,
    AccountKind,
    CreateOrder,
    CreateResult,
    Deposit,
    MarketRecord,
    OrderRecord,
    OrderSide,
    ResultRecord,
)

U64_MAX = 2**64 - 1


def _order(**overrides) -> OrderRecord:
    values = dict(
        search_market=Pubkey.new_unique(),
        result=Pubkey.new_unique(),
        sol_account=Pubkey.new_unique(),
        token_account=Pubkey.new_unique(),
        side=OrderSide.SELL,
        price=200_000_000,
        quantity=1,
        escrow_bump_seed=254,
        creation_slot=0,
        execution_authority=Pubkey.new_unique(),
    )
    values.update(overrides)
    return OrderRecord(**values)


def test_market_layout_bytes() -> None:
    """市场账户：类型字节 + u32 长度前缀字符串 + 32 字节地址。"""

    data = encode_account(MarketRecord(search_string="test"))
    assert data == bytes([0]) + (4).to_bytes(4, "little") + b"test" + bytes(32)
    assert account_kind(data) == AccountKind.MARKET


def test_deposit_instruction_bytes() -> None:
    assert encode_instruction(Deposit(quantity=1)) == bytes([1]) + (1).to_bytes(8, "little")


def test_create_order_instruction_bytes() -> None:
    data = encode_instruction(CreateOrder(side=OrderSide.SELL, price=7, quantity=1, escrow_bump_seed=255))
    assert data == bytes([2, 1]) + (7).to_bytes(8, "little") + (1).to_bytes(8, "little") + bytes([255])


@pytest.mark.parametrize(
    "record",
    [
        MarketRecord(search_string=""),
        MarketRecord(search_string="who won? 谁赢了", best_result=Pubkey.new_unique()),
        ResultRecord(search_market=Pubkey.new_unique(), url="", name="", snippet="", bump_seed=0),
        ResultRecord(
            search_market=Pubkey.new_unique(),
            url="https://example.com/a?b=c",
            name="Example",
            snippet="snippet",
            yes_mint=Pubkey.new_unique(),
            no_mint=Pubkey.new_unique(),
            bump_seed=255,
        ),
        _order(),
        _order(side=OrderSide.BUY, price=U64_MAX, quantity=0, creation_slot=U64_MAX),
    ],
)
def test_account_round_trip(record) -> None:
    assert decode_account(encode_account(record)) == record


@pytest.mark.parametrize(
    "payload",
    [
        CreateResult(url="", name="", snippet="", bump_seed=0),
        CreateResult(url="https://example.com", name="Example", snippet="text", bump_seed=253),
        Deposit(quantity=0),
        Deposit(quantity=U64_MAX),
        CreateOrder(side=OrderSide.SELL, price=U64_MAX, quantity=1, escrow_bump_seed=255),
    ],
)
def test_instruction_round_trip(payload) -> None:
    assert decode_instruction(encode_instruction(payload)) == payload


def test_decoded_side_is_enum() -> None:
    decoded = decode_instruction(encode_instruction(CreateOrder(side=OrderSide.SELL, price=1, quantity=1, escrow_bump_seed=1)))
    assert decoded.side is OrderSide.SELL


def test_account_decode_allows_trailing_bytes() -> None:
    """账户分配的空间可能大于记录本身。"""

    record = MarketRecord(search_string="padded")
    assert decode_account(encode_account(record) + bytes(64)) == record


def test_instruction_decode_rejects_trailing_bytes() -> None:
    with pytest.raises(CodecError):
        decode_instruction(encode_instruction(Deposit(quantity=1)) + b"\x00")


@pytest.mark.parametrize("cut", [1, 5, 33])
def test_truncated_account_rejected(cut: int) -> None:
    data = encode_account(MarketRecord(search_string="truncated"))
    with pytest.raises(CodecError):
        decode_account(data[:-cut])


def test_truncated_instruction_rejected() -> None:
    data = encode_instruction(Deposit(quantity=5))
    with pytest.raises(CodecError):
        decode_instruction(data[:-1])


def test_unknown_tags_rejected() -> None:
    with pytest.raises(CodecError):
        decode_account(bytes([9]) + bytes(40))
    with pytest.raises(CodecError):
        decode_instruction(bytes([9]))
    with pytest.raises(CodecError):
        decode_account(b"")


def test_invalid_utf8_rejected() -> None:
    data = bytes([0]) + (2).to_bytes(4, "little") + b"\xff\xfe" + bytes(32)
    with pytest.raises(CodecError):
        decode_account(data)


def test_invalid_side_rejected() -> None:
    data = bytearray(encode_instruction(CreateOrder(side=OrderSide.SELL, price=1, quantity=1, escrow_bump_seed=1)))
    data[1] = 7
    with pytest.raises(CodecError):
        decode_instruction(bytes(data))


@pytest.mark.parametrize("quantity", [2**64, -1])
def test_out_of_range_integer_rejected(quantity: int) -> None:
    with pytest.raises(CodecError):
        encode_instruction(Deposit(quantity=quantity))


def test_out_of_range_bump_rejected() -> None:
    with pytest.raises(CodecError):
        encode_instruction(CreateResult(url="u", name="n", snippet="s", bump_seed=256))


def test_blank_detection() -> None:
    assert is_blank(bytes(100))
    assert not is_blank(encode_account(MarketRecord(search_string="x")))


def test_record_size_tracks_strings() -> None:
    short = ResultRecord(search_market=UNSET_ADDRESS, url="a", name="b", snippet="c")
    longer = ResultRecord(search_market=UNSET_ADDRESS, url="a" * 11, name="b", snippet="c")
    assert record_size(short) == 1 + 32 + 3 * (4 + 1) + 32 + 32 + 1
    assert record_size(longer) - record_size(short) == 10


def test_long_strings_round_trip() -> None:
    """64 KiB 的 URL 与摘要也应原样往返。"""

    long_text = "界" * (64 * 1024 // 3) + "x" * (64 * 1024 % 3)
    payload = CreateResult(url="u" * 64 * 1024, name="n", snippet=long_text, bump_seed=1)
    assert len(payload.snippet.encode("utf-8")) == 64 * 1024
    assert decode_instruction(encode_instruction(payload)) == payload

    record = MarketRecord(search_string="q" * 64 * 1024)
    assert decode_account(encode_account(record)) == record


def test_length_prefix_beyond_buffer_rejected() -> None:
    data = bytes([0]) + (0xFFFFFFFF).to_bytes(4, "little") + b"short" + bytes(32)
    with pytest.raises(CodecError):
        decode_account(data)
    with pytest.raises(CodecError):
        decode_instruction(bytes([0]) + (0xFFFFFFFF).to_bytes(4, "little") + b"u")
