# -*- coding: utf-8 -*-
"""
API 主路由器聚合文件

此文件定义主 `APIRouter` 实例 (`api_router`)，聚合 `endpoints` 子目录下各个模块的子路由器。
`paperproxy/main.py` 会把它挂载到 `settings.api_prefix` (默认 `/api`) 之下，
因此 `search_endpoints.router` 中的 `/search` 最终对应 `/api/search`。

与其他文件的交互:
*   **`paperproxy.api.v1.endpoints.search`**: `GET /search`。
*   **`paperproxy.api.v1.endpoints.papers`**: `POST /papers`。
*   **`paperproxy.api.v1.endpoints.paper`**: `GET /paper/{paper_id}`。
*   **`paperproxy.api.v1.endpoints.probe`**: `GET /test`。
*   **`paperproxy.main`**: 导入 `api_router` 并挂载到 FastAPI 应用上。
"""

from fastapi import APIRouter

from paperproxy.api.v1.endpoints import paper as paper_endpoints
from paperproxy.api.v1.endpoints import papers as papers_endpoints
from paperproxy.api.v1.endpoints import probe as probe_endpoints
from paperproxy.api.v1.endpoints import search as search_endpoints

api_router = APIRouter()

# 旧前端直接调用 /api/search、/api/papers、/api/paper/{id}，所以子路由器不加额外前缀
api_router.include_router(search_endpoints.router, tags=["Search"])
api_router.include_router(papers_endpoints.router, tags=["Papers"])
api_router.include_router(paper_endpoints.router, tags=["Papers"])
api_router.include_router(probe_endpoints.router, tags=["Health"])
