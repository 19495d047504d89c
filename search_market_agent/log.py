"""日志初始化。"""

from __future__ import annotations

import logging

from rich.logging import RichHandler


def configure_logging(level: str = "INFO") -> None:
    """为整个进程配置一次根 logger，输出交给 Rich 渲染。"""

    logging.basicConfig(
        level=level.upper(),
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )
    # httpx 在 INFO 下会打印每个请求，噪声过大。
    logging.getLogger("httpx").setLevel(logging.WARNING)


__all__ = ["configure_logging"]
