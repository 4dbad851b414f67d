"""
PMC 补全 (Enrichment Pass)

PubMed 的记录常常缺少摘要、完整作者或精确日期；若记录带有 PMC 交叉引用 ID，
就批量向 PMC 再取一次全文元数据，并把更丰富的字段覆盖到原记录上。

本模块只负责"合并"这一步 (纯函数，不做网络调用)；
取数由 `paperproxy.services.paper_service.PaperService` 编排。
"""

import logging
from typing import Dict, List

from paperproxy.models.paper import NO_ABSTRACT, Paper
from paperproxy.utils.ids import sanitize_pmcid

logger = logging.getLogger(__name__)


def collect_pmcids(papers: List[Paper]) -> List[str]:
    """Non-empty sanitized pmcids of the records, in record order."""
    return [paper.pmcid for paper in papers if paper.pmcid]


def overlay_pmc_fields(paper: Paper, pmc_paper: Paper) -> Paper:
    """
    Return a copy of `paper` carrying the PMC record's richer fields.

    Authors and the PDF link always come from PMC. Title, abstract, first
    author, journal and date fall back to the PubMed values when PMC has
    nothing for them. `uid` and `pmcid` are never touched.
    """
    authors = pmc_paper.authors_array
    return paper.model_copy(
        update={
            "title": pmc_paper.title or paper.title,
            "abstract_text": (
                pmc_paper.abstract_text
                if pmc_paper.abstract_text != NO_ABSTRACT
                else paper.abstract_text
            ),
            "sort_first_author": authors[0] if authors else paper.sort_first_author,
            "authors": ", ".join(authors),
            "authors_array": list(authors),
            "source": pmc_paper.source or paper.source,
            "pubdate": pmc_paper.pubdate or paper.pubdate,
            "pdf_url": pmc_paper.pdf_url,
        }
    )


def enrich_with_pmc(papers: List[Paper], pmc_papers: List[Paper]) -> List[Paper]:
    """
    Merge PMC records into PubMed records, joined on sanitized pmcid.

    Each PMC record updates the first PubMed record with the same pmcid.
    Records without a PMC counterpart come back unchanged; order is kept.
    """
    enriched = list(papers)
    index: Dict[str, int] = {}
    for position, paper in enumerate(enriched):
        if paper.pmcid:
            index.setdefault(sanitize_pmcid(paper.pmcid), position)

    matched = 0
    for pmc_paper in pmc_papers:
        key = sanitize_pmcid(pmc_paper.pmcid)
        position = index.get(key) if key else None
        if position is None:
            logger.debug(f"PMC record '{pmc_paper.pmcid}' has no PubMed counterpart")
            continue
        enriched[position] = overlay_pmc_fields(enriched[position], pmc_paper)
        matched += 1

    logger.info(
        f"Enrichment merged {matched} of {len(pmc_papers)} PMC record(s) into {len(papers)} PubMed record(s)"
    )
    return enriched
