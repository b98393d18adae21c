"""
Provider adapter contract shared by every scoring backend.

An adapter turns a section input into a prompt, sends it to its backend and
validates the reply against one of the response variants below. Concrete
adapters only implement ``_complete`` (one system/user exchange returning
text); prompt construction, JSON extraction, validation and health probing
live here so every backend behaves the same way at the boundary.
"""

from __future__ import annotations
import json
import logging
import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from ..errors import ProviderError
from ..models import (
	HealthStatus,
	ListeningInput,
	ProviderRawScore,
	ReadingInput,
	SpeakingInput,
	WritingInput,
)
from ..rubrics import (
	SPEAKING_DIMENSIONS,
	WRITING_DIMENSIONS,
	PromptPair,
	build_listening_explanation_prompt,
	build_reading_explanation_prompt,
	build_speaking_prompt,
	build_writing_prompt,
)
from ..timeouts import with_timeout

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)

R = TypeVar("R", bound=BaseModel)


# ============================================================================
# RESPONSE VARIANTS
# ============================================================================

class _ProviderResponse(BaseModel):
	model_config = ConfigDict(extra="ignore")

	rationale: Optional[str] = None

	@field_validator("rationale", mode="before")
	@classmethod
	def _coerce_rationale(cls, value: Any) -> Optional[str]:
		if value is None or isinstance(value, str):
			return value
		return json.dumps(value, ensure_ascii=False)


class SpeakingRubricResponse(_ProviderResponse):
	overall: Optional[float] = None
	content: Optional[float] = None
	pronunciation: Optional[float] = None
	fluency: Optional[float] = None
	grammar: Optional[float] = None
	vocabulary: Optional[float] = None

	def subscores(self) -> Dict[str, float]:
		return {k: getattr(self, k) for k in SPEAKING_DIMENSIONS if getattr(self, k) is not None}


class WritingRubricResponse(_ProviderResponse):
	overall: Optional[float] = None
	content: Optional[float] = None
	structure: Optional[float] = None
	coherence: Optional[float] = None
	grammar: Optional[float] = None
	vocabulary: Optional[float] = None
	spelling: Optional[float] = None

	def subscores(self) -> Dict[str, float]:
		return {k: getattr(self, k) for k in WRITING_DIMENSIONS if getattr(self, k) is not None}


class ExplanationResponse(_ProviderResponse):
	pass


# ============================================================================
# PARSING
# ============================================================================

def extract_json(text: str, *, provider: Optional[str] = None) -> Dict[str, Any]:
	"""Extract the JSON object from LLM text, tolerant of code fences and surrounding prose.

	Uses the body of the first code fence when there is one, then parses the
	substring from the first ``{`` to the last ``}``.

	Raises:
		ProviderError: if no JSON object can be parsed.
	"""
	trimmed = (text or "").strip()
	fence = _FENCE.search(trimmed)
	candidate = fence.group(1) if fence else trimmed
	first = candidate.find("{")
	last = candidate.rfind("}")
	if first == -1 or last < first:
		raise ProviderError(provider, "no JSON object in response")
	try:
		data = json.loads(candidate[first:last + 1])
	except ValueError as exc:
		raise ProviderError(provider, f"malformed JSON in response: {exc}") from exc
	if not isinstance(data, dict):
		raise ProviderError(provider, "response JSON is not an object")
	return data


def parse_response(text: str, variant: Type[R], *, provider: Optional[str] = None) -> R:
	data = extract_json(text, provider=provider)
	try:
		return variant.model_validate(data)
	except ValidationError as exc:
		issues = "; ".join(
			f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
		)
		raise ProviderError(provider, f"response failed validation ({issues})") from exc


# ============================================================================
# ADAPTER BASE
# ============================================================================

@dataclass
class Completion:
	text: str
	model: str
	meta: Dict[str, Any] = field(default_factory=dict)


class ScoringProvider:
	"""Base class for one scoring backend."""

	name: str = "provider"

	def __init__(self, *, model: str, api_key: Optional[str] = None, health_timeout_ms: float = 2000) -> None:
		self.api_key = api_key
		self.model = model
		self.health_timeout_ms = health_timeout_ms

	@property
	def configured(self) -> bool:
		return bool(self.api_key)

	async def _complete(self, prompt: PromptPair, *, json_mode: bool, max_tokens: int) -> Completion:
		raise NotImplementedError

	async def aclose(self) -> None:
		return None

	async def _call(self, prompt: PromptPair, *, json_mode: bool, max_tokens: int) -> Completion:
		if not self.configured:
			raise ProviderError(self.name, "api_key_missing")
		try:
			return await self._complete(prompt, json_mode=json_mode, max_tokens=max_tokens)
		except ProviderError:
			raise
		except httpx.HTTPStatusError as exc:
			raise ProviderError(self.name, f"HTTP {exc.response.status_code} from backend") from exc
		except httpx.RequestError as exc:
			raise ProviderError(self.name, f"network error: {exc!r}") from exc

	def _meta(self, completion: Completion, started: float) -> Dict[str, Any]:
		meta: Dict[str, Any] = {
			"provider": self.name,
			"model": completion.model,
			"latencyMs": round((time.perf_counter() - started) * 1000),
			"timestamp": datetime.now(timezone.utc).isoformat(),
		}
		meta.update({k: v for k, v in completion.meta.items() if v is not None})
		return meta

	# ---- scoring capabilities ----

	async def score_speaking(self, data: SpeakingInput) -> ProviderRawScore:
		started = time.perf_counter()
		prompt = build_speaking_prompt(
			data.question_type,
			data.transcript,
			reference_text=data.reference_text,
			include_rationale=data.include_rationale,
		)
		completion = await self._call(prompt, json_mode=True, max_tokens=500)
		parsed = parse_response(completion.text, SpeakingRubricResponse, provider=self.name)
		return ProviderRawScore(
			overall=parsed.overall,
			subscores=parsed.subscores(),
			rationale=parsed.rationale or None,
			meta=self._meta(completion, started),
		)

	async def score_writing(self, data: WritingInput) -> ProviderRawScore:
		started = time.perf_counter()
		prompt = build_writing_prompt(
			data.question_type,
			data.text,
			prompt=data.prompt,
			include_rationale=data.include_rationale,
		)
		completion = await self._call(prompt, json_mode=True, max_tokens=600)
		parsed = parse_response(completion.text, WritingRubricResponse, provider=self.name)
		return ProviderRawScore(
			overall=parsed.overall,
			subscores=parsed.subscores(),
			rationale=parsed.rationale or None,
			meta=self._meta(completion, started),
		)

	# Reading and listening are scored deterministically; providers supply explanations.
	async def score_reading(self, data: ReadingInput) -> ProviderRawScore:
		started = time.perf_counter()
		prompt = build_reading_explanation_prompt(
			data.question_type,
			question=data.question or "",
			options=data.options,
			correct=data.correct,
			user_selected=data.user_selected,
		)
		completion = await self._call(prompt, json_mode=False, max_tokens=250)
		parsed = parse_response(completion.text, ExplanationResponse, provider=self.name)
		return ProviderRawScore(
			overall=None,
			subscores={},
			rationale=parsed.rationale or "",
			meta=self._meta(completion, started),
		)

	async def score_listening(self, data: ListeningInput) -> ProviderRawScore:
		started = time.perf_counter()
		prompt = build_listening_explanation_prompt(
			data.question_type,
			transcript=data.transcript,
			target_text=data.target_text,
			user_text=data.user_text,
		)
		completion = await self._call(prompt, json_mode=False, max_tokens=250)
		parsed = parse_response(completion.text, ExplanationResponse, provider=self.name)
		return ProviderRawScore(
			overall=None,
			subscores={},
			rationale=parsed.rationale or "",
			meta=self._meta(completion, started),
		)

	# ---- liveness ----

	async def health(self) -> HealthStatus:
		"""Cheap one-token probe. Failures are reported, never raised."""
		if not self.configured:
			return HealthStatus(provider=self.name, ok=False, error="api_key_missing")
		started = time.perf_counter()
		try:
			completion = await with_timeout(
				self._complete(PromptPair(system="pong", user="ping"), json_mode=False, max_tokens=1),
				self.health_timeout_ms,
			)
		except Exception as exc:
			logger.info("Health probe for %s failed: %s", self.name, exc)
			return HealthStatus(
				provider=self.name,
				ok=False,
				model=self.model,
				latency_ms=round((time.perf_counter() - started) * 1000),
				error=str(exc) or type(exc).__name__,
			)
		return HealthStatus(
			provider=self.name,
			ok=True,
			model=completion.model,
			latency_ms=round((time.perf_counter() - started) * 1000),
		)
