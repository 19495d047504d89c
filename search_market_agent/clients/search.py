"""Bing Web Search API 客户端。"""

from __future__ import annotations

from typing import List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from ..config import Settings
from ..errors import SearchError
from ..types import SearchCandidate

SUBSCRIPTION_KEY_HEADER = "Ocp-Apim-Subscription-Key"


class BingWebPage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    url: str
    snippet: str = ""


class BingWebPages(BaseModel):
    model_config = ConfigDict(extra="ignore")

    value: List[BingWebPage] = []


class BingSearchResponse(BaseModel):
    """搜索响应中本 agent 关心的部分；其余字段忽略。"""

    model_config = ConfigDict(extra="ignore")

    webPages: Optional[BingWebPages] = None


class SearchClient:
    """搜索服务客户端。

    以市场问题文本为查询词调用固定端点，使用静态订阅密钥鉴权，
    按服务方排序原样返回结果，不做过滤、去重或打分。
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        if not settings.azure_subscription_key:
            raise SearchError("AZURE_SUBSCRIPTION_KEY is not set")
        self.settings = settings
        self.endpoint = settings.search_endpoint
        self.max_results = settings.search_max_results
        self._http = httpx.AsyncClient(
            headers={SUBSCRIPTION_KEY_HEADER: settings.azure_subscription_key},
            timeout=settings.search_timeout_seconds,
            transport=transport,
        )

    async def search(self, query: str) -> List[SearchCandidate]:
        """执行一次搜索。

        Args:
            query: 原始查询文本，由 httpx 负责 URL 编码。

        Returns:
            候选结果列表，顺序与服务方一致。

        Raises:
            SearchError: 网络错误、非 2xx 响应或响应结构不符。
        """
        try:
            resp = await self._http.get(self.endpoint, params={"q": query, "count": self.max_results})
            resp.raise_for_status()
            payload = BingSearchResponse.model_validate(resp.json())
        except httpx.HTTPError as exc:
            raise SearchError(f"search request for {query!r} failed: {exc}") from exc
        except (ValidationError, ValueError) as exc:
            raise SearchError(f"unexpected search response for {query!r}: {exc}") from exc

        if payload.webPages is None:
            return []
        return [SearchCandidate(url=page.url, name=page.name, snippet=page.snippet) for page in payload.webPages.value]

    async def close(self) -> None:
        await self._http.aclose()


__all__ = ["SearchClient", "BingSearchResponse", "SUBSCRIPTION_KEY_HEADER"]
