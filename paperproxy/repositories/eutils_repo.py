"""
NCBI EUtils 数据访问层 (EUtils Repository)

功能 (Function):
封装对 `esearch.fcgi` 与 `efetch.fcgi` 的出站调用：
1. 统一拼接查询参数 (包括可选的 `api_key` / `email` / `tool`)。
2. 把 httpx 的传输层异常、非 2xx 状态、超时映射为 `UpstreamTransportError`。
3. 把 esearch 的 JSON 响应解析为 `EsearchResult`；非 JSON 响应映射为 `UpstreamProtocolError`。

交互 (Interaction):
- 依赖 (Depends on): 共享的 `httpx.AsyncClient` (由 `paperproxy.core.http.lifespan` 创建)、`Settings`。
- 被使用 (Used by): `SearchService`, `PaperService`。

不做缓存、不做限流、不做重试：任何一次失败都直接抛给调用方。
"""

import logging
from typing import Any, Dict, Optional, Sequence

import httpx

from paperproxy.core.config import Settings
from paperproxy.core.exceptions import UpstreamProtocolError, UpstreamTransportError
from paperproxy.models.search import EsearchResult

logger = logging.getLogger(__name__)

ESEARCH = "esearch.fcgi"
EFETCH = "efetch.fcgi"


class EUtilsRepository:
    """Thin async client for the two EUtils endpoints the proxy needs."""

    def __init__(self, client: httpx.AsyncClient, settings: Settings):
        self.client = client
        self.settings = settings
        self.base_url = settings.ncbi_eutils_base_url.rstrip("/")

    def _params(self, **params: Any) -> Dict[str, Any]:
        merged = {key: value for key, value in params.items() if value is not None}
        if self.settings.ncbi_api_key:
            merged["api_key"] = self.settings.ncbi_api_key
        if self.settings.ncbi_email:
            merged["email"] = self.settings.ncbi_email
        if self.settings.ncbi_tool:
            merged["tool"] = self.settings.ncbi_tool
        return merged

    async def _get(self, endpoint: str, params: Dict[str, Any], label: str) -> httpx.Response:
        url = f"{self.base_url}/{endpoint}"
        logger.info(f"Calling {label}: {url} params={params}")
        try:
            response = await self.client.get(
                url, params=params, timeout=self.settings.ncbi_timeout_sec
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error(f"{label} responded with error status {status}")
            raise UpstreamTransportError(
                f"{label} Error: {status}",
                status_code=status,
                details=e.response.text,
            ) from e
        except httpx.TimeoutException as e:
            logger.error(f"{label} timed out after {self.settings.ncbi_timeout_sec}s")
            raise UpstreamTransportError(
                f"No response from {label}",
                details=str(e) or "no response received (timeout)",
            ) from e
        except httpx.RequestError as e:
            logger.error(f"No response received from {label}: {e!r}")
            raise UpstreamTransportError(
                f"No response from {label}",
                details=str(e) or "no response received",
            ) from e

        logger.debug(f"{label} status: {response.status_code}")
        return response

    @staticmethod
    def _esearch_result(response: httpx.Response, label: str) -> EsearchResult:
        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamProtocolError(
                f"{label} returned a non-JSON body",
                details=response.text[:1000],
            ) from e
        block = payload.get("esearchresult") if isinstance(payload, dict) else None
        result = EsearchResult.model_validate(block or {})
        logger.debug(f"{label} result: {result.model_dump()}")
        return result

    async def esearch_history(self, db: str, term: str) -> EsearchResult:
        """Run a search on the history server (``usehistory=y``)."""
        label = "ESearch History API"
        params = self._params(db=db, term=term, usehistory="y", retmode="json")
        response = await self._get(ESEARCH, params, label)
        return self._esearch_result(response, label)

    async def esearch_page(
        self,
        db: str,
        webenv: str,
        query_key: str,
        retstart: int,
        retmax: int,
    ) -> EsearchResult:
        """Fetch one slice of a stored result set; the term is implied by the session."""
        label = "ESearch API for specific IDs"
        params = self._params(
            db=db,
            query_key=query_key,
            WebEnv=webenv,
            retstart=retstart,
            retmax=retmax,
            retmode="json",
        )
        response = await self._get(ESEARCH, params, label)
        return self._esearch_result(response, label)

    async def efetch(self, db: str, ids: Sequence[str], label: Optional[str] = None) -> bytes:
        """Fetch full XML records for `ids` (comma-joined) from `db`."""
        label = label or f"EFetch API ({db})"
        params = self._params(db=db, id=",".join(ids), retmode="xml")
        response = await self._get(EFETCH, params, label)
        return response.content
