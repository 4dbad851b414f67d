# -*- coding: utf-8 -*-
"""
PaperProxy 后端 FastAPI 应用入口文件

此文件定义 FastAPI 应用实例、配置中间件、注册 API 路由、设置全局异常处理器，
并通过 lifespan 管理共享的出站 HTTP 客户端。它是整个代理服务的启动点。

主要职责:
1.  **初始化 FastAPI 应用**: 创建 `FastAPI` 实例，设置标题、版本和 `lifespan`。
2.  **配置中间件**:
    *   `PermissiveCorsMiddleware`: 所有响应都带上宽松的 CORS 头；任意路径的 `OPTIONS`
        请求直接返回 200 空响应 (预检请求不进入路由)。
    *   `DetailedLoggingMiddleware`: 记录每个请求的方法、路径、状态码和耗时。
3.  **注册 API 路由**: 将 `paperproxy.api.v1.api.api_router` 挂载到 `settings.api_prefix` (默认 `/api`)。
4.  **全局异常处理器**: 把所有错误统一渲染为 `{"error": ..., "details": ...}`：
    *   `ProxyError` 及其子类 → 异常自带的状态码。
    *   `RequestValidationError` → 400 `Invalid request`。
    *   Starlette `HTTPException` (未知路由 404、不支持的方法 405) → `{"error": detail}`。
    *   其他 `Exception` → 500 `Internal Server Error`。
5.  **基础端点**: `/health` 健康检查。
6.  **启动服务**: `run()` 是 `paperproxy` 命令行入口，使用 uvicorn 启动。

与其他文件的交互:
*   **`paperproxy.logging_config`**: `setup_logging()` 初始化日志系统。
*   **`paperproxy.core.http`**: `lifespan` 管理共享的 `httpx.AsyncClient`。
*   **`paperproxy.core.config`**: `settings` 对象。
*   **`paperproxy.core.exceptions`**: `ProxyError` 异常层级。
*   **`paperproxy.api.v1.api`**: `api_router`。
"""

import json
import logging
import time
import traceback
from functools import partial
from typing import Awaitable, Callable, Dict

import uvicorn
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from paperproxy.logging_config import setup_logging

setup_logging()
logger = logging.getLogger("paperproxy.main")

from paperproxy.api.v1.api import api_router  # noqa: E402
from paperproxy.core.config import settings  # noqa: E402
from paperproxy.core.exceptions import ProxyError  # noqa: E402
from paperproxy.core.http import lifespan  # noqa: E402

CORS_HEADERS: Dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

# --- 应用初始化与 Lifespan ---

lifespan_with_settings = partial(lifespan, settings=settings)

app = FastAPI(
    title=settings.project_name,
    description="Proxy that normalizes NCBI EUtils PubMed/PMC records into one paper shape.",
    version="1.0.0",
    lifespan=lifespan_with_settings,
)


# --- 中间件配置 ---


class DetailedLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """记录请求与响应概要；异常记录后重新抛出，交给全局异常处理器。"""
        request_id = id(request)
        start_time = time.time()
        method = request.method
        path = request.url.path
        client = (
            f"{request.client.host}:{request.client.port}" if request.client else "Unknown"
        )

        logger.debug(f"→ 请求开始 [{request_id}] {method} {path} 客户端: {client}")
        if request.query_params:
            logger.debug(f"→ 查询参数 [{request_id}]: {dict(request.query_params)}")

        if method in ("POST", "PUT", "PATCH"):
            try:
                body_bytes = await request.body()
                if body_bytes:
                    text = body_bytes.decode("utf-8")
                    logger.debug(
                        f"→ 请求体 [{request_id}]: {text[:1000]}{'...' if len(text) > 1000 else ''}"
                    )
            except UnicodeDecodeError:
                logger.debug(f"→ 请求体 [{request_id}]: <二进制数据>")

        try:
            response = await call_next(request)
        except Exception as e:
            process_time = (time.time() - start_time) * 1000
            logger.error(
                f"! 请求处理异常 [{request_id}] {method} {path} - 耗时: {process_time:.2f}ms - {e}"
            )
            raise

        process_time = (time.time() - start_time) * 1000
        log_msg = f"← 响应完成 [{request_id}] {method} {path} - 状态码: {response.status_code} - 耗时: {process_time:.2f}ms"
        if response.status_code >= 500:
            logger.error(log_msg)
        elif response.status_code >= 400:
            logger.warning(log_msg)
        else:
            logger.info(log_msg)
        return response


class PermissiveCorsMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=CORS_HEADERS)
        response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response


# 最后添加的中间件位于最外层：OPTIONS 在日志和路由之前就被处理
app.add_middleware(DetailedLoggingMiddleware)
app.add_middleware(PermissiveCorsMiddleware)


# --- 全局异常处理器 ---


@app.exception_handler(ProxyError)
async def proxy_error_handler(request: Request, exc: ProxyError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"{type(exc).__name__} on {request.method} {request.url.path}: "
        f"{exc.message} (status={exc.status_code}, details={exc.details!r})"
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_content())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = jsonable_encoder(exc.errors())
    logger.warning(f"请求验证失败 [{id(request)}] {request.method} {request.url.path}")
    try:
        logger.warning(f"验证错误详情 [{id(request)}]: {json.dumps(errors)}")
    except TypeError:
        logger.warning(f"验证错误详情 [{id(request)}]: {errors}")
    return JSONResponse(
        status_code=400, content={"error": "Invalid request", "details": errors}
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    if exc.status_code == 405:
        content = {"error": "Method not allowed"}
    else:
        content = {"error": exc.detail}
    return JSONResponse(
        status_code=exc.status_code, content=content, headers=exc.headers
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    处理所有未被上面处理器捕获的异常，返回 500。

    该处理器运行在所有用户中间件之外，因此这里需要自己补上 CORS 头。
    """
    request_id = id(request)
    logger.error(
        f"全局异常处理器捕获到未处理异常 [{request_id}] "
        f"请求: {request.method} {request.url.path}\n"
        + "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    )
    return JSONResponse(
        status_code=500,
        content={"error": "Internal Server Error", "details": str(exc)},
        headers=CORS_HEADERS,
    )


# --- API 路由与基础端点 ---


@app.get("/health", status_code=200, tags=["Health"])
async def health_check() -> Dict[str, str]:
    logger.debug("执行健康检查 /health")
    return {"status": "ok"}


app.include_router(api_router, prefix=settings.api_prefix)


# --- 应用启动 ---


def run() -> None:
    """`paperproxy` 命令行入口。"""
    logger.info(f"启动 Uvicorn 服务器 (环境: {settings.environment})")
    logger.info(f"访问地址: http://{settings.api_host}:{settings.api_port}")
    uvicorn.run(
        "paperproxy.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        log_level=settings.log_level.lower(),
        # 保留 setup_logging() 的 dictConfig，不让 uvicorn 覆盖
        log_config=None,
    )


if __name__ == "__main__":
    run()
