import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends

from paperproxy.api.v1 import dependencies as deps
from paperproxy.models.search import ErrorResponse, PapersRequest, PapersResponse
from paperproxy.services.paper_service import PaperService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "/papers",
    response_model=PapersResponse,
    summary="Fetch paper details in batch",
    description=(
        "Fetches and normalizes the records for a list of PubMed or PMC IDs. "
        "PubMed records with a PMC cross-reference are enriched from PMC."
    ),
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def fetch_papers(
    payload: Optional[PapersRequest] = Body(None),
    paper_service: PaperService = Depends(deps.get_paper_service),
) -> PapersResponse:
    ids = payload.ids if payload else None
    db = payload.db if payload else None
    logger.info(f"Received batch request: db={db}, ids={ids}")
    return await paper_service.fetch_papers(ids=ids, db=db)
