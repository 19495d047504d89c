"""存活探针：任意方法、任意路径都返回固定文本，供宿主判断进程健康。"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse
import uvicorn

LIVENESS_TEXT = "search market agent is running"

app = FastAPI(title="Search Market Agent")


@app.api_route("/{path:path}", methods=["GET", "HEAD", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"])
async def alive(path: str) -> PlainTextResponse:
    return PlainTextResponse(LIVENESS_TEXT)


def build_server(port: int, host: str = "0.0.0.0") -> uvicorn.Server:
    """构建可在当前事件循环中 ``await server.serve()`` 的 uvicorn 服务。"""
    config = uvicorn.Config(app, host=host, port=port, log_level="warning", lifespan="off")
    return uvicorn.Server(config)


__all__ = ["app", "build_server", "LIVENESS_TEXT"]
