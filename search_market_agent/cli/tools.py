"""调试与运维辅助子命令：地址推导、搜索预览、账户解码、钱包生成。"""

from __future__ import annotations

import asyncio
import base64
import binascii
from dataclasses import fields
from pathlib import Path
from typing import Optional

import click
from rich.table import Table
from solders.pubkey import Pubkey

from ..clients.search import SearchClient
from ..config import Settings
from ..errors import AgentError
from ..program.layouts import decode_account
from ..program.pda import mint_authority, order_escrow
from ..services.pricing import ladder_price
from ..types import MarketRecord
from ..wallet import write_wallet
from . import main
from .common import console, print_candidates


def _program_id(value: Optional[str]) -> Pubkey:
    if value:
        try:
            return Pubkey.from_string(value)
        except ValueError as exc:
            raise click.BadParameter(f"invalid address: {value}") from exc
    try:
        return Settings.load().program_pubkey
    except AgentError as exc:
        raise click.UsageError(str(exc)) from exc


@main.command("derive")
@click.option("--program-id", default=None, help="程序地址，缺省读取 PROGRAM_ID。")
@click.option("--order", default=None, help="挂单账户地址，用于推导其 escrow。")
def derive(program_id: Optional[str], order: Optional[str]) -> None:
    """打印程序派生地址（mint authority 与可选的挂单 escrow）。"""

    program = _program_id(program_id)
    table = Table(title="Derived Addresses", header_style="bold cyan")
    table.add_column("Seed")
    table.add_column("Address", overflow="fold")
    table.add_column("Bump", justify="right")
    authority, bump = mint_authority(program)
    table.add_row("mint_authority", str(authority), str(bump))
    if order:
        try:
            order_key = Pubkey.from_string(order)
        except ValueError as exc:
            raise click.BadParameter(f"invalid order address: {order}") from exc
        escrow, escrow_bump = order_escrow(order_key, program)
        table.add_row("token_escrow", str(escrow), str(escrow_bump))
    console.print(table)


@main.command("search")
@click.argument("query")
def search(query: str) -> None:
    """预览某个市场问题的搜索候选与对应卖单价格（不写链）。"""

    async def _run() -> None:
        try:
            settings = Settings.load()
            client = SearchClient(settings)
        except AgentError as exc:
            raise click.UsageError(str(exc)) from exc
        try:
            candidates = await client.search(query)
        except AgentError as exc:
            console.print(f"[red]{exc}[/red]")
            return
        finally:
            await client.close()
        prices: list[int | None] = []
        for index in range(len(candidates)):
            try:
                prices.append(ladder_price(index, settings.base_price_lamports, settings.price_step_lamports))
            except ValueError:
                prices.append(None)
        print_candidates(candidates, prices)

    asyncio.run(_run())


@main.command("decode")
@click.argument("data")
@click.option("--hex", "as_hex", is_flag=True, default=False, help="输入为十六进制而非 base64。")
def decode(data: str, as_hex: bool) -> None:
    """解码一段程序账户数据（市场/结果/挂单）。"""

    try:
        raw = bytes.fromhex(data) if as_hex else base64.b64decode(data, validate=True)
    except (ValueError, binascii.Error) as exc:
        raise click.BadParameter(f"cannot read account data: {exc}") from exc
    try:
        record = decode_account(raw)
    except AgentError as exc:
        console.print(f"[red]{exc}[/red]")
        raise SystemExit(1) from exc

    table = Table(title=type(record).__name__, header_style="bold cyan")
    table.add_column("Field")
    table.add_column("Value", overflow="fold")
    for field in fields(record):
        table.add_row(field.name, str(getattr(record, field.name)))
    console.print(table)
    if isinstance(record, MarketRecord):
        status = "[green]decided[/green]" if record.decided else "[yellow]unresolved[/yellow]"
        console.print(f"Market status: {status}")


@main.command("wallet-new")
@click.argument("path", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--force", is_flag=True, default=False, help="覆盖已存在的文件。")
def wallet_new(path: Path, force: bool) -> None:
    """生成 Solana CLI 格式的钱包文件，供 WALLET_PATH 使用。"""

    if path.exists() and not force:
        raise click.UsageError(f"{path} already exists; pass --force to overwrite")
    wallet = write_wallet(path)
    console.print(f"Wrote {path}: [bold]{wallet.pubkey()}[/bold]")


__all__ = ["derive", "search", "decode", "wallet_new"]
