import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from paperproxy.api.v1 import dependencies as deps
from paperproxy.models.search import ErrorResponse, SearchResponse
from paperproxy.services.search_service import SearchService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get(
    "/search",
    response_model=SearchResponse,
    summary="Search PubMed or PMC",
    description="Runs a free-text query on the NCBI history server and returns one page of IDs.",
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def search_ids(
    term: Optional[str] = Query(None, description="Free-text query."),
    db: Optional[str] = Query(None, description="Target database: pubmed or pmc."),
    # 整数参数以字符串接收，由服务层校验并给出统一的错误信息
    retstart: Optional[str] = Query(None, description="Zero-based offset of the page."),
    retmax: Optional[str] = Query(None, description="Page size, 1..10000."),
    search_service: SearchService = Depends(deps.get_search_service),
) -> SearchResponse:
    logger.info(
        f"Received search request: term='{term}', db={db}, retstart={retstart}, retmax={retmax}"
    )
    return await search_service.search(
        term=term, db=db, retstart=retstart, retmax=retmax
    )
