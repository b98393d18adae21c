from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..orchestrator import ScoringOrchestrator
from .scoring import get_orchestrator

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(orchestrator: ScoringOrchestrator = Depends(get_orchestrator)):
	report = await orchestrator.health()
	# Always 200: provider outages are reported in the body, the service itself is up
	return JSONResponse(
		content=report.model_dump(by_alias=True, exclude_none=True),
		headers={"cache-control": "no-store, no-cache, must-revalidate"},
	)
