import logging

from fastapi import APIRouter, Depends, Path

from paperproxy.api.v1 import dependencies as deps
from paperproxy.models.paper import Paper
from paperproxy.models.search import ErrorResponse
from paperproxy.services.paper_service import PaperService

router = APIRouter()
logger = logging.getLogger(__name__)

# 单篇接口沿用旧前端的响应形状：不含 authorsArray
SINGLE_PAPER_EXCLUDE = {"authors_array"}


@router.get(
    "/paper/{paper_id}",
    response_model=Paper,
    response_model_exclude=SINGLE_PAPER_EXCLUDE,
    summary="Get a single paper",
    description="Looks the ID up in PubMed first, then in PMC.",
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def get_paper(
    paper_id: str = Path(..., description="PubMed ID, or a PMC ID as fallback."),
    paper_service: PaperService = Depends(deps.get_paper_service),
) -> Paper:
    logger.info(f"Received request for paper: id='{paper_id}'")
    return await paper_service.get_paper(paper_id)


@router.get("/paper", include_in_schema=False)
@router.get("/paper/", include_in_schema=False)
async def get_paper_without_id(
    paper_service: PaperService = Depends(deps.get_paper_service),
) -> Paper:
    # 总是抛出 "Paper ID is required"
    return await paper_service.get_paper(None)
