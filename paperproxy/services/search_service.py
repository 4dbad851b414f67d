"""
搜索编排服务 (Search Orchestrator)

功能 (Function):
把一次自由文本查询转换为一页 ID，调用方无需关心 NCBI History Server 的会话状态。
流程为两次顺序调用：
1. `esearch` (usehistory=y) 取得命中总数 `count` 以及会话令牌 `WebEnv` / `QueryKey`。
2. 若 `retstart < count`，再用会话令牌取 `[retstart, retstart + retmax)` 这一页的 ID；
   否则直接返回空页，不发起第二次调用。

所有参数校验都在任何网络调用之前完成。

交互 (Interaction):
- 依赖 (Depends on): `EUtilsRepository`, `Settings`。
- 被使用 (Used by): `paperproxy.api.v1.endpoints.search`。
"""

import logging
from typing import Optional, Union

from paperproxy.core.config import Settings
from paperproxy.core.exceptions import ClientInputError, UpstreamProtocolError
from paperproxy.models.search import SearchResponse
from paperproxy.repositories.eutils_repo import EUtilsRepository

logger = logging.getLogger(__name__)

RawInt = Union[str, int, None]


def parse_int(value: RawInt, default: int) -> Optional[int]:
    """
    Parse a query-string integer; None means "not an integer".

    Absent values take `default`. Only plain decimal integers are accepted,
    so ``"10abc"`` and ``"1.5"`` are rejected.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return None


class SearchService:
    """Validates search parameters and drives the two-step history-server search."""

    def __init__(self, eutils_repo: EUtilsRepository, settings: Settings):
        self.eutils_repo = eutils_repo
        self.settings = settings

    def invalid_database_message(self) -> str:
        supported = ", ".join(self.settings.supported_databases)
        return f"Invalid database. Supported databases: {supported}"

    async def search(
        self,
        term: Optional[str],
        db: Optional[str] = None,
        retstart: RawInt = None,
        retmax: RawInt = None,
    ) -> SearchResponse:
        # --- 参数校验 (任何网络调用之前) ---
        if term is None or not term.strip():
            raise ClientInputError("Search term is required")

        db = self.settings.default_db if db is None else db
        if db not in self.settings.supported_databases:
            raise ClientInputError(self.invalid_database_message())

        start = parse_int(retstart, 0)
        if start is None or start < 0:
            raise ClientInputError("retstart must be a non-negative integer")

        page_size = parse_int(retmax, self.settings.default_retmax)
        if page_size is None or page_size < 1 or page_size > self.settings.max_retmax:
            raise ClientInputError(
                f"retmax must be a positive integer, max {self.settings.max_retmax}"
            )

        logger.info(
            f"Search request: term='{term}', db={db}, retstart={start}, retmax={page_size}"
        )

        # --- 第一步：建立历史会话 ---
        history = await self.eutils_repo.esearch_history(db, term)
        if history.error:
            raise UpstreamProtocolError(f"ESearch History API Error: {history.error}")
        if not history.webenv or not history.querykey:
            raise UpstreamProtocolError(
                "ESearch History API did not return required WebEnv or QueryKey for pagination."
            )

        total = history.count
        logger.info(f"ESearch History: count={total}, query_key={history.querykey}")

        if start >= total:
            logger.info(f"retstart {start} >= count {total}; returning an empty page")
            return SearchResponse(ids=[], total=total, retstart=start, retmax=page_size)

        # --- 第二步：按会话令牌取一页 ID ---
        page = await self.eutils_repo.esearch_page(
            db, history.webenv, history.querykey, start, page_size
        )
        if page.error:
            raise UpstreamProtocolError(f"ESearch API Error for specific IDs: {page.error}")

        logger.info(f"Fetched {len(page.idlist)} ID(s) for retstart={start}")
        return SearchResponse(
            ids=page.idlist, total=total, retstart=start, retmax=page_size
        )
