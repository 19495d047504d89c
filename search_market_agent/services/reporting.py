"""失败上报：总是写日志，配置了 Bugsnag 时同时转发。"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import bugsnag

logger = logging.getLogger(__name__)


class ErrorReporter:
    """错误上报器。

    Args:
        api_key: Bugsnag API key；为空时只记录日志。
        client: 可注入的 Bugsnag 客户端（测试用）。
    """

    def __init__(self, api_key: Optional[str] = None, client: Optional[Any] = None):
        if client is None and api_key:
            client = bugsnag.Client(api_key=api_key)
        self._client = client

    @property
    def enabled(self) -> bool:
        return self._client is not None

    def report(self, exc: BaseException, context: Mapping[str, Any]) -> None:
        """记录异常并附带上下文（市场地址、解码后的市场记录等）转发。"""
        logger.error("%s (context=%s)", exc, dict(context), exc_info=exc)
        if self._client is not None:
            self._client.notify(exc, metadata={"market": {k: _plain(v) for k, v in context.items()}})


def _plain(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


__all__ = ["ErrorReporter"]
