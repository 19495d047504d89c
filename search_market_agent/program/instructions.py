"""Instruction builders for the search market program.

Account order in each builder is part of the wire contract: the program reads
accounts positionally.
"""

from __future__ import annotations

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from solders.system_program import ID as SYS_PROGRAM_ID
from solders.system_program import CreateAccountParams, create_account
from solders.sysvar import RENT
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import InitializeAccountParams, initialize_account

from ..types import CreateOrder, CreateResult, Deposit
from .layouts import encode_instruction


def build_create_account_instruction(
    payer: Pubkey,
    new_account: Pubkey,
    lamports: int,
    space: int,
    owner: Pubkey,
) -> Instruction:
    """System program create_account; the new account must co-sign."""
    return create_account(
        CreateAccountParams(
            from_pubkey=payer,
            to_pubkey=new_account,
            lamports=lamports,
            space=space,
            owner=owner,
        )
    )


def build_init_holding_instruction(holding: Pubkey, mint: Pubkey, owner: Pubkey) -> Instruction:
    """Token program InitializeAccount for a freshly created holding account."""
    return initialize_account(
        InitializeAccountParams(program_id=TOKEN_PROGRAM_ID, account=holding, mint=mint, owner=owner)
    )


def build_create_result_instruction(
    program_id: Pubkey,
    payload: CreateResult,
    *,
    result: Pubkey,
    market: Pubkey,
    yes_mint: Pubkey,
    no_mint: Pubkey,
    mint_authority: Pubkey,
) -> Instruction:
    """Build the CreateResult instruction.

    Accounts:
    0. result (writable)
    1. market
    2. yes_mint (writable)
    3. no_mint (writable)
    4. mint_authority
    5. rent sysvar
    6. token_program
    """
    accounts = [
        AccountMeta(pubkey=result, is_signer=False, is_writable=True),
        AccountMeta(pubkey=market, is_signer=False, is_writable=False),
        AccountMeta(pubkey=yes_mint, is_signer=False, is_writable=True),
        AccountMeta(pubkey=no_mint, is_signer=False, is_writable=True),
        AccountMeta(pubkey=mint_authority, is_signer=False, is_writable=False),
        AccountMeta(pubkey=RENT, is_signer=False, is_writable=False),
        AccountMeta(pubkey=TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
    ]
    return Instruction(program_id=program_id, accounts=accounts, data=encode_instruction(payload))


def build_deposit_instruction(
    program_id: Pubkey,
    payload: Deposit,
    *,
    market: Pubkey,
    result: Pubkey,
    wallet: Pubkey,
    mint_authority: Pubkey,
    yes_mint: Pubkey,
    yes_holding: Pubkey,
    no_mint: Pubkey,
    no_holding: Pubkey,
) -> Instruction:
    """Build the Deposit instruction.

    Accounts:
    0. market
    1. result (writable)
    2. wallet (signer, writable)
    3. system_program
    4. token_program
    5. mint_authority (writable)
    6. yes_mint (writable)
    7. yes_holding (writable)
    8. no_mint (writable)
    9. no_holding (writable)
    """
    accounts = [
        AccountMeta(pubkey=market, is_signer=False, is_writable=False),
        AccountMeta(pubkey=result, is_signer=False, is_writable=True),
        AccountMeta(pubkey=wallet, is_signer=True, is_writable=True),
        AccountMeta(pubkey=SYS_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(pubkey=TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(pubkey=mint_authority, is_signer=False, is_writable=True),
        AccountMeta(pubkey=yes_mint, is_signer=False, is_writable=True),
        AccountMeta(pubkey=yes_holding, is_signer=False, is_writable=True),
        AccountMeta(pubkey=no_mint, is_signer=False, is_writable=True),
        AccountMeta(pubkey=no_holding, is_signer=False, is_writable=True),
    ]
    return Instruction(program_id=program_id, accounts=accounts, data=encode_instruction(payload))


def build_create_order_instruction(
    program_id: Pubkey,
    payload: CreateOrder,
    *,
    order: Pubkey,
    market: Pubkey,
    result: Pubkey,
    wallet: Pubkey,
    token_account: Pubkey,
    mint: Pubkey,
    escrow: Pubkey,
) -> Instruction:
    """Build the CreateOrder instruction.

    The wallet appears three times: as the lamport account receiving proceeds,
    as the token owner authorising the transfer into escrow, and as the
    execution authority.

    Accounts:
    0. order (writable)
    1. market
    2. result
    3. wallet as sol account (writable)
    4. token_account (writable)
    5. mint
    6. wallet as token owner (signer)
    7. escrow (writable)
    8. wallet as execution authority (signer)
    9. token_program
    10. rent sysvar
    11. system_program
    """
    accounts = [
        AccountMeta(pubkey=order, is_signer=False, is_writable=True),
        AccountMeta(pubkey=market, is_signer=False, is_writable=False),
        AccountMeta(pubkey=result, is_signer=False, is_writable=False),
        AccountMeta(pubkey=wallet, is_signer=False, is_writable=True),
        AccountMeta(pubkey=token_account, is_signer=False, is_writable=True),
        AccountMeta(pubkey=mint, is_signer=False, is_writable=False),
        AccountMeta(pubkey=wallet, is_signer=True, is_writable=False),
        AccountMeta(pubkey=escrow, is_signer=False, is_writable=True),
        AccountMeta(pubkey=wallet, is_signer=True, is_writable=False),
        AccountMeta(pubkey=TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(pubkey=RENT, is_signer=False, is_writable=False),
        AccountMeta(pubkey=SYS_PROGRAM_ID, is_signer=False, is_writable=False),
    ]
    return Instruction(program_id=program_id, accounts=accounts, data=encode_instruction(payload))


__all__ = [
    "build_create_account_instruction",
    "build_init_holding_instruction",
    "build_create_result_instruction",
    "build_deposit_instruction",
    "build_create_order_instruction",
]
