# -*- coding: utf-8 -*-
"""
文件目的：测试共享 Fixture (tests/conftest.py)

本文件为整个测试套件提供共享的 pytest fixtures：
- **测试配置**: `test_settings`，指向一个不存在的 EUtils 基础地址，保证测试不会访问真实网络。
- **EUtils 桩 (stub)**: `eutils_stub` 基于 `httpx.MockTransport`，按队列顺序返回预设响应，
  并记录每一次出站请求，便于断言调用次数与查询参数。
- **仓库实例**: `eutils_repo`，使用桩客户端构造的 `EUtilsRepository`。
- **测试应用实例**: `test_app`，即 `paperproxy.main.app`，通过 `dependency_overrides`
  替换配置与 HTTP 客户端，测试结束后恢复。
- **HTTP 客户端**: `client`，用 `asgi-lifespan` 的 `LifespanManager` 包装应用，
  通过 `httpx.ASGITransport` 发送请求。

使用方法:
`async def test_something(client: AsyncClient, eutils_stub: EUtilsStub): ...`
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, AsyncIterator, Callable, Generator, List, Type

import httpx
import pytest
import pytest_asyncio
from asgi_lifespan import LifespanManager
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from paperproxy.api.v1 import dependencies as deps
from paperproxy.core.config import Settings
from paperproxy.repositories.eutils_repo import EUtilsRepository

logger = logging.getLogger(__name__)

TEST_EUTILS_BASE_URL = "https://eutils.test/entrez/eutils"

Responder = Callable[[httpx.Request], httpx.Response]


class EUtilsStub:
    """
    按顺序出队的 EUtils 桩。

    每次出站请求消耗队列中的一项；队列为空时的请求视为测试失败
    (这样 "零次出站调用" 可以直接用 `stub.calls == 0` 断言)。
    """

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self._queue: List[Responder] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    def queue_json(self, payload: Any, status_code: int = 200) -> "EUtilsStub":
        self._queue.append(lambda request: httpx.Response(status_code, json=payload))
        return self

    def queue_xml(self, xml: str, status_code: int = 200) -> "EUtilsStub":
        self._queue.append(
            lambda request: httpx.Response(
                status_code,
                content=xml.encode("utf-8"),
                headers={"Content-Type": "text/xml; charset=UTF-8"},
            )
        )
        return self

    def queue_text(self, text: str, status_code: int = 200) -> "EUtilsStub":
        self._queue.append(lambda request: httpx.Response(status_code, text=text))
        return self

    def queue_exception(
        self, exc_type: Type[httpx.RequestError], message: str
    ) -> "EUtilsStub":
        def raise_error(request: httpx.Request) -> httpx.Response:
            raise exc_type(message, request=request)

        self._queue.append(raise_error)
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self._queue:
            raise AssertionError(f"Unexpected EUtils call: {request.url}")
        return self._queue.pop(0)(request)

    def params(self, index: int) -> dict:
        return dict(self.requests[index].url.params)

    def path(self, index: int) -> str:
        return self.requests[index].url.path


@pytest.fixture
def test_settings() -> Settings:
    """Settings isolated from the developer's environment."""
    return Settings(
        NCBI_EUTILS_BASE_URL=TEST_EUTILS_BASE_URL,
        NCBI_TIMEOUT_SEC=5.0,
        NCBI_API_KEY=None,
        NCBI_EMAIL=None,
        NCBI_TOOL="paperproxy-tests",
        SUPPORTED_DATABASES=["pubmed", "pmc"],
        DEFAULT_DB="pmc",
        DEFAULT_RETMAX=10,
        MAX_RETMAX=10000,
        LOG_LEVEL="DEBUG",
        LOG_TO_FILE=False,
    )


@pytest.fixture
def eutils_stub() -> EUtilsStub:
    return EUtilsStub()


@pytest_asyncio.fixture
async def eutils_http_client(
    eutils_stub: EUtilsStub,
) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(
        transport=httpx.MockTransport(eutils_stub.handler)
    ) as http_client:
        yield http_client


@pytest.fixture
def eutils_repo(
    eutils_http_client: httpx.AsyncClient, test_settings: Settings
) -> EUtilsRepository:
    return EUtilsRepository(client=eutils_http_client, settings=test_settings)


@pytest.fixture
def test_app(
    test_settings: Settings, eutils_http_client: httpx.AsyncClient
) -> Generator[FastAPI, None, None]:
    """
    The real application with its settings and outbound client overridden.

    The lifespan still runs (and creates its own client); the override makes
    every route use the stubbed client instead.
    """
    from paperproxy.main import app

    original_overrides = app.dependency_overrides.copy()
    app.dependency_overrides[deps.get_settings] = lambda: test_settings
    app.dependency_overrides[deps.get_http_client] = lambda: eutils_http_client
    logger.debug("[test_app fixture] dependency overrides applied")
    yield app
    app.dependency_overrides = original_overrides
    logger.debug("[test_app fixture] dependency overrides restored")


@asynccontextmanager
async def lifespan_client(
    app: FastAPI, raise_app_exceptions: bool = True
) -> AsyncIterator[AsyncClient]:
    # LifespanManager 触发 startup/shutdown，ASGITransport 直接调用应用
    async with LifespanManager(app) as manager:
        transport = ASGITransport(
            app=manager.app, raise_app_exceptions=raise_app_exceptions
        )
        async with AsyncClient(transport=transport, base_url="http://test") as async_client:
            yield async_client


@pytest_asyncio.fixture
async def client(test_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    async with lifespan_client(test_app) as async_client:
        yield async_client


@pytest_asyncio.fixture
async def lenient_client(test_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Like `client`, but unhandled server errors come back as 500 responses."""
    async with lifespan_client(test_app, raise_app_exceptions=False) as async_client:
        yield async_client
