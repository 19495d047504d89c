"""启动 agent 的 CLI 子命令。"""

from __future__ import annotations

import asyncio
from typing import Optional

import click

from ..agent import build_agent, run_agent
from ..config import Settings
from ..errors import ConfigError
from ..log import configure_logging
from . import main
from .common import console


@main.command("run")
@click.option("--env-file", type=click.Path(dir_okay=False), default=None, help="额外的 .env 文件。")
@click.option("--port", type=int, default=None, help="覆盖存活探针端口（PORT）。")
def run(env_file: Optional[str], port: Optional[int]) -> None:
    """订阅市场程序，解析并结算每个新出现的未决市场。"""

    overrides = {"port": port} if port is not None else None
    try:
        settings = Settings.load(env_file=env_file, overrides=overrides)
        configure_logging(settings.log_level)
        agent = build_agent(settings)
    except ConfigError as exc:
        console.print(f"[red]{exc}[/red]")
        raise SystemExit(2) from exc

    console.print(f"Wallet public key: [bold]{agent.wallet.pubkey()}[/bold]")
    try:
        asyncio.run(run_agent(agent))
    except KeyboardInterrupt:
        console.print("[yellow]stopped[/yellow]")


__all__ = ["run"]
