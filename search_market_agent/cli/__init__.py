"""Search market agent 顶层 CLI 入口。

本模块仅负责定义 Click 命令组并导入各子命令模块，
实际业务逻辑拆分在 `search_market_agent.cli.*` 子模块中。
"""

from __future__ import annotations

import click


@click.group()
def main() -> None:
    """Search prediction market resolution agent."""


# 导入子模块以注册子命令（装饰器在导入时执行）
from . import run as _run  # noqa: F401,E402
from . import settlements as _settlements  # noqa: F401,E402
from . import tools as _tools  # noqa: F401,E402


__all__ = ["main"]
