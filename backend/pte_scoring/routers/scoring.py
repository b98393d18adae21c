from __future__ import annotations
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ..errors import InvalidRequestError, ScoringError
from ..models import Section
from ..orchestrator import ScoringOrchestrator
from ..schemas import ScoreResponse, ScoreTrace, build_error, parse_score_request, redact_secret
from ..settings import settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai-scoring", tags=["ai-scoring"])


def get_orchestrator(request: Request) -> ScoringOrchestrator:
	return request.app.state.orchestrator


def _json(content: Dict[str, Any], status_code: int, started: float) -> JSONResponse:
	res = JSONResponse(content=content, status_code=status_code)
	res.headers["x-duration-ms"] = str(round((time.perf_counter() - started) * 1000))
	res.headers["cache-control"] = "no-store"
	return res


async def _read_body(request: Request) -> Any:
	try:
		return await request.json()
	except ValueError as e:
		raise InvalidRequestError(f"Request body is not valid JSON: {e}") from e


async def _score_request(
	request: Request,
	orchestrator: ScoringOrchestrator,
	section: Optional[Section] = None,
) -> JSONResponse:
	started = time.perf_counter()
	try:
		body = await _read_body(request)
		if section is not None and isinstance(body, dict):
			body = {**body, "section": section.value}
		parsed = parse_score_request(body)
		outcome = await orchestrator.score(parsed)
	except Exception as e:
		status_code = 400 if isinstance(e, InvalidRequestError) else 500
		code = e.code if isinstance(e, ScoringError) else "internal_error"
		if status_code == 500 and not isinstance(e, ScoringError):
			logger.exception("Unexpected scoring failure")
		err = build_error(
			code,
			str(e) or "Unexpected error",
			{"durationMs": round((time.perf_counter() - started) * 1000)},
		)
		return _json(err.model_dump(by_alias=True, exclude_none=True), status_code, started)

	response = ScoreResponse(
		result=outcome.score,
		trace=ScoreTrace(
			section=parsed.section.value,
			question_type=parsed.question_type,
			attempt_id=parsed.attempt_id,
			user_id=parsed.user_id,
			provider_priority=parsed.provider_priority,
			duration_ms=round((time.perf_counter() - started) * 1000),
			timestamp=datetime.now(timezone.utc).isoformat(),
		),
	)
	return _json(response.model_dump(by_alias=True, exclude_none=True), 200, started)


@router.post("/score")
async def score(request: Request, orchestrator: ScoringOrchestrator = Depends(get_orchestrator)):
	return await _score_request(request, orchestrator)


@router.post("/listening")
async def score_listening(request: Request, orchestrator: ScoringOrchestrator = Depends(get_orchestrator)):
	"""Same contract as ``/score`` with the section fixed to LISTENING."""
	return await _score_request(request, orchestrator, Section.LISTENING)


@router.get("/models")
async def models(orchestrator: ScoringOrchestrator = Depends(get_orchestrator)):
	started = time.perf_counter()
	report = await orchestrator.health()
	body = {
		"ok": report.ok,
		"providers": [s.model_dump(by_alias=True, exclude_none=True) for s in report.providers],
		"env": {
			"OPENAI_API_KEY": redact_secret(settings.openai_api_key),
			"GEMINI_API_KEY": redact_secret(settings.gemini_api_key),
			"OPENROUTER_API_KEY": redact_secret(settings.openrouter_api_key),
			"PTE_SCORING_PROVIDER_PRIORITY": settings.scoring_provider_priority,
			"PTE_SCORING_TIMEOUT_MS": settings.scoring_timeout_ms,
			"OPENAI_MODEL": settings.openai_model,
			"GEMINI_MODEL": settings.gemini_model,
			"OPENROUTER_MODEL": settings.openrouter_model,
		},
		"meta": {
			"timestamp": report.timestamp,
			"note": "Keys are redacted; use /ai-scoring/score to run scoring.",
		},
	}
	return _json(body, 200, started)
