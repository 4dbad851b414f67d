"""
HTTP 客户端生命周期管理 (HTTP Client Lifecycle)

功能 (Function):
`lifespan` 异步上下文管理器在应用启动时创建唯一一个共享的 `httpx.AsyncClient`
(带固定超时)，连同 `Settings` 一起存入 `app.state`；应用关闭时关闭该客户端。
每个请求都复用这一个客户端，请求之间没有其他可变的共享状态。

交互 (Interaction):
- 依赖 (Depends on): `paperproxy.core.config.Settings`。
- 被使用 (Used by):
    - `paperproxy.main`: 通过 `functools.partial(lifespan, settings=settings)` 传给 `FastAPI(lifespan=...)`。
    - `paperproxy.api.v1.dependencies`: 从 `request.app.state` 取出客户端与配置。
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI

from paperproxy.core.config import Settings

logger = logging.getLogger(__name__)


def build_http_client(settings: Settings) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.ncbi_timeout_sec),
        follow_redirects=True,
        headers={"User-Agent": f"{settings.ncbi_tool or settings.project_name}/1.0"},
    )


@asynccontextmanager
async def lifespan(app: FastAPI, settings: Settings) -> AsyncGenerator[None, None]:
    """
    Handles application startup and shutdown.

    Receives settings explicitly so tests can bind their own configuration.
    """
    logger.info("Application lifespan startup: creating shared EUtils HTTP client...")
    app.state.settings = settings
    app.state.http_client = build_http_client(settings)
    logger.info(
        f"HTTP client ready (base={settings.ncbi_eutils_base_url}, timeout={settings.ncbi_timeout_sec}s)"
    )
    try:
        yield
    finally:
        logger.info("Application lifespan shutdown: closing HTTP client...")
        await app.state.http_client.aclose()
        app.state.http_client = None
        logger.info("HTTP client closed.")
