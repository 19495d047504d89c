"""CLI 通用工具与共享对象。

本模块提供：

- 统一的 Rich `console` 实例；
- 用于各子命令复用的表格渲染函数。
"""

from __future__ import annotations

from typing import Any, Iterable

from rich.console import Console
from rich.table import Table

from ..config import LAMPORTS_PER_TOKEN
from ..types import SearchCandidate

console = Console()

_STATE_STYLES = {
    "order_placed": "green",
    "failed": "red",
}


def print_candidates(candidates: list[SearchCandidate], prices: list[int | None]) -> None:
    """以 Rich 表格渲染搜索候选及其卖单价格。

    Args:
        candidates: 搜索服务返回的候选列表。
        prices: 与候选一一对应的梯度价格（lamports），越界时为 None。
    """
    table = Table(title="Search Candidates", header_style="bold cyan", row_styles=["dim", ""])
    table.add_column("#", justify="right")
    table.add_column("Title", overflow="fold")
    table.add_column("URL", overflow="fold")
    table.add_column("Price", justify="right")
    for index, (candidate, price) in enumerate(zip(candidates, prices)):
        price_text = f"{price / LAMPORTS_PER_TOKEN:.4f}" if price is not None else "[red]-[/red]"
        table.add_row(str(index), candidate.name, candidate.url, price_text)
    if not candidates:
        console.print("[yellow]No candidates returned[/yellow]")
    else:
        console.print(table)


def print_settlements(entries: Iterable[dict[str, Any]]) -> None:
    """渲染结算流水，每个候选一行。"""
    table = Table(title="Settlements", header_style="bold cyan", show_lines=False)
    table.add_column("Market", overflow="fold")
    table.add_column("#", justify="right")
    table.add_column("State")
    table.add_column("Last confirmed")
    table.add_column("Result", overflow="fold")
    table.add_column("Order", overflow="fold")
    table.add_column("Error", overflow="fold")
    rows = 0
    for entry in entries:
        state = entry.get("state") or ""
        style = _STATE_STYLES.get(state, "yellow")
        accounts = entry.get("accounts") or {}
        table.add_row(
            entry.get("market", ""),
            str(entry.get("candidate_index", "")),
            f"[{style}]{state}[/{style}]",
            entry.get("last_confirmed") or "-",
            accounts.get("result", "-"),
            accounts.get("order", "-"),
            entry.get("error") or "",
        )
        rows += 1
    if rows == 0:
        console.print("[yellow]No settlements recorded[/yellow]")
    else:
        console.print(table)


__all__ = ["console", "print_candidates", "print_settlements"]
