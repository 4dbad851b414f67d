# -*- coding: utf-8 -*-
"""
FastAPI 依赖注入 (Dependency Injection) 定义文件

此文件集中定义了 API 端点函数所需依赖项的 "提供者" (provider) 函数：
1.  **获取共享资源**: `get_settings`, `get_http_client` 从 `lifespan` 管理的
    `request.app.state` 中取出配置对象与共享的 `httpx.AsyncClient`。
2.  **提供仓库实例**: `get_eutils_repository` 基于共享客户端创建 `EUtilsRepository`。
3.  **提供服务实例**: `get_search_service`, `get_paper_service`。

仓库与服务本身不持有可变状态，按请求创建即可；真正共享的只有 HTTP 连接池。

与其他文件的交互:
*   **`paperproxy.core.http.lifespan`**: 负责把 `settings` 和 `http_client` 放入 `app.state`。
*   **API 端点文件 (`paperproxy/api/v1/endpoints/*.py`)**: 通过 `Depends()` 使用这里的提供函数。
*   **测试**: 通过 `app.dependency_overrides` 替换这里的任意一个提供函数。
"""

import logging

import httpx
from fastapi import Depends, HTTPException, Request, status

from paperproxy.core.config import Settings
from paperproxy.repositories.eutils_repo import EUtilsRepository
from paperproxy.services.paper_service import PaperService
from paperproxy.services.search_service import SearchService

logger = logging.getLogger(__name__)


def get_settings(request: Request) -> Settings:
    settings = getattr(request.app.state, "settings", None)
    if settings is None:
        logger.error("Settings not found in application state.")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service configuration is not available.",
        )
    return settings


def get_http_client(request: Request) -> httpx.AsyncClient:
    """Fetch the shared outbound client created by the lifespan."""
    client = getattr(request.app.state, "http_client", None)
    if client is None:
        logger.error("HTTP client not found in application state.")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Upstream HTTP client is not available.",
        )
    return client


def get_eutils_repository(
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
) -> EUtilsRepository:
    return EUtilsRepository(client=client, settings=settings)


def get_search_service(
    eutils_repo: EUtilsRepository = Depends(get_eutils_repository),
    settings: Settings = Depends(get_settings),
) -> SearchService:
    return SearchService(eutils_repo=eutils_repo, settings=settings)


def get_paper_service(
    eutils_repo: EUtilsRepository = Depends(get_eutils_repository),
    settings: Settings = Depends(get_settings),
) -> PaperService:
    return PaperService(eutils_repo=eutils_repo, settings=settings)
