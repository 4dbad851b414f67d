import logging
from typing import Dict

from fastapi import APIRouter

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/test", summary="Liveness probe for the API prefix")
async def test_route() -> Dict[str, str]:
    logger.debug("Test route hit")
    return {"message": "Hello from test API route!"}
