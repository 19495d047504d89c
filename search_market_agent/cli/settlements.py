"""结算流水查看子命令。"""

from __future__ import annotations

import click

from ..config import Settings
from ..errors import ConfigError
from ..storage import SettlementJournal
from . import main
from .common import print_settlements


@main.command("settlements")
@click.option("--all", "show_all", is_flag=True, default=False, help="显示每次状态变化而不只是最新状态。")
@click.option("--failed", "only_failed", is_flag=True, default=False, help="只显示失败（可能遗留孤儿账户）的候选。")
def settlements(show_all: bool, only_failed: bool) -> None:
    """展示本地结算流水。"""

    try:
        settings = Settings.load()
    except ConfigError as exc:
        raise click.UsageError(str(exc)) from exc
    journal = SettlementJournal.in_dir(settings.data_dir)
    entries = journal.entries() if show_all else journal.latest()
    if only_failed:
        entries = [entry for entry in entries if entry.get("state") == "failed"]
    print_settlements(entries)


__all__ = ["settlements"]
