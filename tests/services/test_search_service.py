# -*- coding: utf-8 -*-
"""
文件目的：测试搜索编排服务 (tests/services/test_search_service.py)

测试策略：
- 参数校验用例使用 `AsyncMock(spec=EUtilsRepository)`，断言校验失败时没有任何出站调用。
- 流程用例使用真实的 `EUtilsRepository` + `EUtilsStub` (httpx.MockTransport)，
  断言两次调用的顺序与查询参数、`retstart >= count` 时跳过第二次调用，以及上游错误的映射。
"""

from unittest.mock import AsyncMock

import httpx
import pytest

from paperproxy.core.config import Settings
from paperproxy.core.exceptions import (
    ClientInputError,
    UpstreamProtocolError,
    UpstreamTransportError,
)
from paperproxy.models.search import SearchResponse
from paperproxy.repositories.eutils_repo import EUtilsRepository
from paperproxy.services.search_service import SearchService, parse_int
from tests.xml_samples import esearch_history_payload, esearch_page_payload

pytestmark = pytest.mark.asyncio


@pytest.fixture
def mock_repo() -> AsyncMock:
    return AsyncMock(spec=EUtilsRepository)


@pytest.fixture
def offline_service(mock_repo: AsyncMock, test_settings: Settings) -> SearchService:
    return SearchService(eutils_repo=mock_repo, settings=test_settings)


@pytest.fixture
def search_service(eutils_repo: EUtilsRepository, test_settings: Settings) -> SearchService:
    return SearchService(eutils_repo=eutils_repo, settings=test_settings)


# --- 参数解析 ---


@pytest.mark.parametrize(
    "raw, expected",
    [(None, 7), ("0", 0), ("25", 25), (" 3 ", 3), (4, 4), ("-1", -1), ("abc", None), ("10abc", None), ("1.5", None), ("", None), (True, None)],
)
async def test_parse_int(raw, expected) -> None:
    assert parse_int(raw, 7) == expected


# --- 校验：零出站调用 ---


@pytest.mark.parametrize(
    "kwargs, message",
    [
        ({"term": None}, "Search term is required"),
        ({"term": ""}, "Search term is required"),
        ({"term": "   "}, "Search term is required"),
        ({"term": "cancer", "db": "medline"}, "Invalid database. Supported databases: pubmed, pmc"),
        ({"term": "cancer", "db": ""}, "Invalid database. Supported databases: pubmed, pmc"),
        ({"term": "cancer", "retstart": "-1"}, "retstart must be a non-negative integer"),
        ({"term": "cancer", "retstart": "abc"}, "retstart must be a non-negative integer"),
        ({"term": "cancer", "retmax": "0"}, "retmax must be a positive integer, max 10000"),
        ({"term": "cancer", "retmax": "-5"}, "retmax must be a positive integer, max 10000"),
        ({"term": "cancer", "retmax": "10001"}, "retmax must be a positive integer, max 10000"),
        ({"term": "cancer", "retmax": "ten"}, "retmax must be a positive integer, max 10000"),
    ],
)
async def test_validation_errors_make_no_outbound_calls(
    offline_service: SearchService, mock_repo: AsyncMock, kwargs, message
) -> None:
    with pytest.raises(ClientInputError) as exc_info:
        await offline_service.search(**kwargs)

    assert exc_info.value.message == message
    assert exc_info.value.status_code == 400
    mock_repo.esearch_history.assert_not_awaited()
    mock_repo.esearch_page.assert_not_awaited()


async def test_validation_through_stub_records_zero_calls(
    search_service: SearchService, eutils_stub
) -> None:
    for retmax in ("0", "-3", "10001"):
        with pytest.raises(ClientInputError):
            await search_service.search("cancer", retmax=retmax)
    assert eutils_stub.calls == 0


# --- 两步流程 ---


async def test_search_two_step_flow(search_service: SearchService, eutils_stub) -> None:
    eutils_stub.queue_json(esearch_history_payload(count="157", webenv="WEB1", querykey="3"))
    eutils_stub.queue_json(esearch_page_payload(["123", "456"]))

    result = await search_service.search("cancer", db="pmc", retstart="0", retmax="2")

    assert result == SearchResponse(ids=["123", "456"], total=157, retstart=0, retmax=2)
    assert eutils_stub.calls == 2

    history = eutils_stub.params(0)
    assert eutils_stub.path(0).endswith("/esearch.fcgi")
    assert history["db"] == "pmc"
    assert history["term"] == "cancer"
    assert history["usehistory"] == "y"
    assert history["retmode"] == "json"
    assert history["tool"] == "paperproxy-tests"
    assert "api_key" not in history

    page = eutils_stub.params(1)
    assert page["WebEnv"] == "WEB1"
    assert page["query_key"] == "3"
    assert page["retstart"] == "0"
    assert page["retmax"] == "2"
    assert "term" not in page


async def test_search_defaults(search_service: SearchService, eutils_stub) -> None:
    eutils_stub.queue_json(esearch_history_payload(count="5"))
    eutils_stub.queue_json(esearch_page_payload(["1", "2", "3", "4", "5"]))

    result = await search_service.search("malaria")

    assert result.retstart == 0
    assert result.retmax == 10
    assert eutils_stub.params(0)["db"] == "pmc"
    assert eutils_stub.params(1)["retmax"] == "10"


@pytest.mark.parametrize("retstart", ["157", "200"])
async def test_retstart_beyond_count_skips_page_call(
    search_service: SearchService, eutils_stub, retstart: str
) -> None:
    eutils_stub.queue_json(esearch_history_payload(count="157"))

    result = await search_service.search("cancer", retstart=retstart, retmax="20")

    assert result.ids == []
    assert result.total == 157
    assert result.retstart == int(retstart)
    assert eutils_stub.calls == 1


async def test_unparsable_count_is_zero(search_service: SearchService, eutils_stub) -> None:
    eutils_stub.queue_json(esearch_history_payload(count="lots"))

    result = await search_service.search("cancer")

    assert result.total == 0
    assert result.ids == []
    assert eutils_stub.calls == 1


async def test_missing_idlist_yields_empty_page(search_service: SearchService, eutils_stub) -> None:
    eutils_stub.queue_json(esearch_history_payload(count="3"))
    eutils_stub.queue_json({"esearchresult": {"count": "3"}})

    result = await search_service.search("cancer")

    assert result.ids == []
    assert result.total == 3


# --- 上游错误 ---


async def test_history_embedded_error(search_service: SearchService, eutils_stub) -> None:
    eutils_stub.queue_json({"esearchresult": {"ERROR": "Invalid query syntax"}})

    with pytest.raises(UpstreamProtocolError) as exc_info:
        await search_service.search("((")

    assert exc_info.value.message == "ESearch History API Error: Invalid query syntax"
    assert exc_info.value.status_code == 500


@pytest.mark.parametrize("missing", ["webenv", "querykey"])
async def test_missing_session_tokens(search_service: SearchService, eutils_stub, missing: str) -> None:
    payload = esearch_history_payload(**{missing: None})
    eutils_stub.queue_json(payload)

    with pytest.raises(UpstreamProtocolError) as exc_info:
        await search_service.search("cancer")

    assert exc_info.value.message == (
        "ESearch History API did not return required WebEnv or QueryKey for pagination."
    )
    assert eutils_stub.calls == 1


async def test_page_embedded_error(search_service: SearchService, eutils_stub) -> None:
    eutils_stub.queue_json(esearch_history_payload(count="10"))
    eutils_stub.queue_json({"esearchresult": {"ERROR": "Unknown WebEnv"}})

    with pytest.raises(UpstreamProtocolError) as exc_info:
        await search_service.search("cancer")

    assert exc_info.value.message == "ESearch API Error for specific IDs: Unknown WebEnv"


async def test_upstream_status_is_propagated(search_service: SearchService, eutils_stub) -> None:
    eutils_stub.queue_text("Too Many Requests", status_code=429)

    with pytest.raises(UpstreamTransportError) as exc_info:
        await search_service.search("cancer")

    assert exc_info.value.status_code == 429
    assert exc_info.value.details == "Too Many Requests"


async def test_timeout_maps_to_500(search_service: SearchService, eutils_stub) -> None:
    eutils_stub.queue_exception(httpx.ReadTimeout, "read timed out")

    with pytest.raises(UpstreamTransportError) as exc_info:
        await search_service.search("cancer")

    assert exc_info.value.status_code == 500
    assert exc_info.value.details == "read timed out"
