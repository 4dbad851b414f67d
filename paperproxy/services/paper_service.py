"""
论文检索服务 (Paper Retrieval Service)

功能 (Function):
1.  **批量检索 (`fetch_papers`)**: 清洗 ID 列表 → 一次 `efetch` → 归一化；
    当数据库为 `pubmed` 且存在 PMC 交叉引用时，再批量请求一次 PMC 并执行补全 (enrichment)。
2.  **单篇检索 (`get_paper`)**: 先查 PubMed，找不到再用同一个 ID 查 PMC；
    两边都没有则抛出 `NotFoundError`。单篇路径不做补全。

一次请求内的上游调用严格顺序执行，最多两次。

交互 (Interaction):
- 依赖 (Depends on): `EUtilsRepository`, `normalizer.normalize`, `enrichment.enrich_with_pmc`, `Settings`。
- 被使用 (Used by): `paperproxy.api.v1.endpoints.papers`, `paperproxy.api.v1.endpoints.paper`。
"""

import logging
from typing import Any, List, Optional

from paperproxy.core.config import Settings
from paperproxy.core.exceptions import ClientInputError, NotFoundError
from paperproxy.models.paper import Database, Paper
from paperproxy.models.search import PapersResponse
from paperproxy.repositories.eutils_repo import EUtilsRepository
from paperproxy.services.enrichment import collect_pmcids, enrich_with_pmc
from paperproxy.services.normalizer import extract_error_message, normalize
from paperproxy.utils.ids import sanitize_pmcid

logger = logging.getLogger(__name__)


def clean_ids(ids: List[Any]) -> List[str]:
    """Sanitize, stringify and drop blank IDs, keeping order."""
    cleaned = []
    for raw in ids:
        if raw is None:
            continue
        value = sanitize_pmcid(raw.strip() if isinstance(raw, str) else raw)
        value = str(value).strip()
        if value:
            cleaned.append(value)
    return cleaned


class PaperService:
    def __init__(self, eutils_repo: EUtilsRepository, settings: Settings):
        self.eutils_repo = eutils_repo
        self.settings = settings

    async def fetch_papers(self, ids: Any, db: Optional[str] = None) -> PapersResponse:
        """
        Retrieve and normalize a batch of records.

        Args:
            ids: raw identifiers from the request body (strings or numbers,
                optionally carrying a ``PMC`` prefix).
            db: ``pubmed`` or ``pmc``; defaults to the configured default.

        Raises:
            ClientInputError: empty/missing ID list, unsupported database, or
                nothing left after cleaning. Raised before any upstream call.
        """
        if not ids or not isinstance(ids, list):
            raise ClientInputError("IDs array is required and cannot be empty")

        db = self.settings.default_db if db is None else db
        if db not in self.settings.supported_databases:
            supported = ", ".join(self.settings.supported_databases)
            raise ClientInputError(f"Invalid database. Supported databases: {supported}")

        cleaned = clean_ids(ids)
        if not cleaned:
            raise ClientInputError("No valid IDs provided after cleaning.")

        logger.info(f"Fetching {len(cleaned)} record(s) from {db}: {cleaned}")
        document = await self.eutils_repo.efetch(db, cleaned)
        papers = normalize(document, Database(db))

        if db == Database.PUBMED.value:
            papers = await self._enrich(papers)

        return PapersResponse(papers=papers, total=len(papers))

    async def _enrich(self, papers: List[Paper]) -> List[Paper]:
        pmcids = list(dict.fromkeys(collect_pmcids(papers)))
        if not pmcids:
            logger.debug("No PubMed record carries a PMC ID; skipping enrichment")
            return papers

        logger.info(f"Enriching {len(pmcids)} PubMed record(s) from PMC")
        pmc_document = await self.eutils_repo.efetch(
            Database.PMC.value, pmcids, label="EFetch API (pmc enrichment)"
        )
        pmc_papers = normalize(pmc_document, Database.PMC)
        return enrich_with_pmc(papers, pmc_papers)

    async def get_paper(self, paper_id: Optional[str]) -> Paper:
        """Look a single ID up in PubMed, then PMC; first record wins."""
        if not paper_id:
            raise ClientInputError("Paper ID is required")
        paper_id = paper_id.strip()
        if not paper_id or paper_id == "$":
            raise ClientInputError("Invalid Paper ID provided.")

        pubmed_document = await self.eutils_repo.efetch(Database.PUBMED.value, [paper_id])
        papers = normalize(pubmed_document, Database.PUBMED)
        if papers:
            logger.info(f"Paper '{paper_id}' found in PubMed")
            return papers[0]

        logger.info(f"Paper '{paper_id}' not found in PubMed; trying PMC")
        pmc_document = await self.eutils_repo.efetch(Database.PMC.value, [paper_id])
        papers = normalize(pmc_document, Database.PMC)
        if papers:
            logger.info(f"Paper '{paper_id}' found in PMC")
            return papers[0]

        error_text = extract_error_message(pmc_document)
        if error_text:
            logger.error(f"PMC efetch returned error for '{paper_id}': {error_text}")
        raise NotFoundError("No article found in PubMed or PMC.", details=error_text)
