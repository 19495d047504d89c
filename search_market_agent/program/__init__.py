"""On-chain program wire contract: address derivation, layouts, instructions."""

from .layouts import (
    account_kind,
    decode_account,
    decode_instruction,
    encode_account,
    encode_instruction,
    is_blank,
)
from .pda import derive, mint_authority, order_escrow

__all__ = [
    "account_kind",
    "decode_account",
    "decode_instruction",
    "encode_account",
    "encode_instruction",
    "is_blank",
    "derive",
    "mint_authority",
    "order_escrow",
]
