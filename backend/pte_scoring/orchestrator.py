"""
Scoring Orchestrator
====================

Accepts a validated scoring request and produces one normalized 0-90 score.

Objective task types (reading multiple choice, fill in the blanks, reorder
paragraphs, listening write from dictation) are scored deterministically.
Everything else is dispatched to the configured LLM providers one at a time,
in priority order, each attempt bounded by a timeout. The first provider that
answers wins; its raw output is normalized and returned. When every candidate
fails the caller gets a single ``AllProvidersExhaustedError`` listing each
provider's failure.

Providers are tried sequentially, never concurrently, so a request pays for
at most one successful LLM call. ``health()`` is the one fan-out: every
provider is probed at once and reported independently.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import OrderedDict, deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Deque, Dict, Iterable, List, Mapping, Optional

from .deterministic import try_deterministic
from .errors import AllProvidersExhaustedError, ProviderAttempt, ProviderError, ScoringTimeoutError, TranscriptionError
from .models import (
	HealthReport,
	HealthStatus,
	ListeningInput,
	NormalizedScore,
	ProviderInput,
	ProviderRawScore,
	ReadingInput,
	Section,
	SpeakingInput,
	WritingInput,
)
from .normalize import normalize_raw_score
from .providers.base import ScoringProvider
from .rubrics import get_default_weights
from .schemas import ScoreRequest
from .timeouts import with_timeout
from .transcription import SpeechTranscriber

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 8000
DEFAULT_HEALTH_TIMEOUT_MS = 2000

# Speaking/writing favour the stronger rubric scorer; reading/listening only need fast explanations
SECTION_DEFAULT_PRIORITY: Dict[Section, List[str]] = {
	Section.SPEAKING: ["openai", "gemini", "openrouter"],
	Section.WRITING: ["openai", "gemini", "openrouter"],
	Section.READING: ["gemini", "openai", "openrouter"],
	Section.LISTENING: ["gemini", "openai", "openrouter"],
}


# ============================================================================
# DISPATCH STATE MACHINE
# ============================================================================

class DispatchState(str, Enum):
	PENDING = "pending"
	ATTEMPTING = "attempting"
	SUCCEEDED = "succeeded"
	FAILED = "failed"
	EXHAUSTED = "exhausted"


class ProviderDispatch:
	"""One request's walk over its candidate providers.

	PENDING -> ATTEMPTING(provider) -> SUCCEEDED (terminal)
	                                -> FAILED -> ATTEMPTING(next provider), or EXHAUSTED (terminal)
	"""

	def __init__(self, candidates: Iterable[str]) -> None:
		self._pending: Deque[str] = deque(candidates)
		self.state = DispatchState.PENDING
		self.current: Optional[str] = None
		self.attempts: List[ProviderAttempt] = []
		self.result: Optional[NormalizedScore] = None
		if not self._pending:
			self.state = DispatchState.EXHAUSTED

	@property
	def finished(self) -> bool:
		return self.state in (DispatchState.SUCCEEDED, DispatchState.EXHAUSTED)

	def _expect(self, *states: DispatchState) -> None:
		if self.state not in states:
			raise RuntimeError(f"invalid dispatch transition from {self.state.value}")

	def next_candidate(self) -> Optional[str]:
		if self.finished:
			return None
		self._expect(DispatchState.PENDING, DispatchState.FAILED)
		self.current = self._pending.popleft()
		self.state = DispatchState.ATTEMPTING
		return self.current

	def succeed(self, result: NormalizedScore) -> None:
		self._expect(DispatchState.ATTEMPTING)
		self.result = result
		self.state = DispatchState.SUCCEEDED

	def fail(self, error: Exception) -> None:
		self._expect(DispatchState.ATTEMPTING)
		self.attempts.append(ProviderAttempt(provider=self.current or "unknown", error=error))
		self.current = None
		self.state = DispatchState.FAILED if self._pending else DispatchState.EXHAUSTED


@dataclass
class ScoringOutcome:
	score: NormalizedScore
	provider: str
	provider_order: List[str] = field(default_factory=list)
	attempts: List[ProviderAttempt] = field(default_factory=list)


# ============================================================================
# ORCHESTRATOR
# ============================================================================

class ScoringOrchestrator:
	def __init__(
		self,
		providers: Mapping[str, ScoringProvider],
		*,
		default_priority: Optional[List[str]] = None,
		timeout_ms: Optional[float] = DEFAULT_TIMEOUT_MS,
		health_timeout_ms: Optional[float] = DEFAULT_HEALTH_TIMEOUT_MS,
		transcriber: Optional[SpeechTranscriber] = None,
	) -> None:
		self.providers: "OrderedDict[str, ScoringProvider]" = OrderedDict(providers)
		self.default_priority = list(default_priority or [])
		self.timeout_ms = timeout_ms
		self.health_timeout_ms = health_timeout_ms
		self.transcriber = transcriber

	# ---- configuration lookups ----

	def _known(self, names: Optional[Iterable[str]]) -> List[str]:
		out: List[str] = []
		for name in names or []:
			key = str(name).strip().lower()
			if key in self.providers and key not in out:
				out.append(key)
		return out

	def provider_order(self, section: Section, override: Optional[List[str]] = None) -> List[str]:
		"""Caller order if it names any known provider, else configured order, else the section default."""
		for candidates in (override, self.default_priority, SECTION_DEFAULT_PRIORITY.get(section)):
			order = self._known(candidates)
			if order:
				return order
		return list(self.providers)

	def resolve_timeout(self, override: Optional[float]) -> Optional[float]:
		return override if override is not None else self.timeout_ms

	# ---- scoring ----

	async def score(self, request: ScoreRequest) -> ScoringOutcome:
		started = time.perf_counter()
		timeout_ms = self.resolve_timeout(request.timeout_ms)
		order = self.provider_order(request.section, request.provider_priority)

		deterministic = try_deterministic(request.section, request.question_type, request.payload)
		if deterministic is not None:
			if request.include_rationale:
				deterministic = await self._attach_explanation(deterministic, request, order, timeout_ms)
			return ScoringOutcome(score=deterministic, provider="deterministic", provider_order=order)

		provider_input = await self._build_input(request)
		weights = get_default_weights(request.section)
		dispatch = ProviderDispatch(order)
		while not dispatch.finished:
			name = dispatch.next_candidate()
			if name is None:
				break
			try:
				raw = await self._attempt(name, request.section, provider_input, timeout_ms)
			except Exception as exc:
				error = exc if isinstance(exc, ProviderError) else ProviderError(name, exc)
				logger.warning("Scoring provider %s failed for %s/%s: %s", name, request.section.value, request.question_type, error)
				dispatch.fail(error)
				continue
			result = normalize_raw_score(raw, weights)
			metadata: Dict[str, Any] = {
				"providers": [raw.meta or {"provider": name}],
				"orchestratorLatencyMs": round((time.perf_counter() - started) * 1000),
			}
			if dispatch.attempts:
				metadata["failedProviders"] = [{"provider": a.provider, "error": a.reason} for a in dispatch.attempts]
			dispatch.succeed(result.model_copy(update={"metadata": metadata}))
			logger.info(
				"Scored %s/%s with %s in %dms",
				request.section.value,
				request.question_type,
				name,
				metadata["orchestratorLatencyMs"],
			)

		if dispatch.state == DispatchState.SUCCEEDED and dispatch.result is not None:
			return ScoringOutcome(
				score=dispatch.result,
				provider=dispatch.current or "",
				provider_order=order,
				attempts=dispatch.attempts,
			)
		logger.error(
			"All scoring providers failed for %s/%s: %s",
			request.section.value,
			request.question_type,
			", ".join(f"{a.provider}={a.reason}" for a in dispatch.attempts) or "no providers",
		)
		raise AllProvidersExhaustedError(dispatch.attempts)

	async def _attempt(self, name: str, section: Section, data: ProviderInput, timeout_ms: Optional[float]) -> ProviderRawScore:
		provider = self.providers[name]

		def _on_timeout() -> None:
			logger.warning("Scoring provider %s exceeded %sms; abandoning call", name, timeout_ms)

		try:
			return await with_timeout(self._invoke(provider, section, data), timeout_ms, _on_timeout)
		except ScoringTimeoutError as exc:
			exc.provider = name
			raise

	@staticmethod
	async def _invoke(provider: ScoringProvider, section: Section, data: ProviderInput) -> ProviderRawScore:
		if section == Section.SPEAKING:
			return await provider.score_speaking(data)
		if section == Section.WRITING:
			return await provider.score_writing(data)
		if section == Section.READING:
			return await provider.score_reading(data)
		return await provider.score_listening(data)

	async def _attach_explanation(
		self,
		score: NormalizedScore,
		request: ScoreRequest,
		order: List[str],
		timeout_ms: Optional[float],
	) -> NormalizedScore:
		"""Ask providers in order for an explanation; the deterministic numbers are kept."""
		provider_input = await self._build_input(request)
		for name in order:
			try:
				raw = await self._attempt(name, request.section, provider_input, timeout_ms)
			except Exception as exc:
				logger.info("Explanation from %s unavailable: %s", name, exc)
				continue
			if raw.rationale:
				metadata = dict(score.metadata or {})
				metadata["explanationProvider"] = raw.meta or {"provider": name}
				return score.model_copy(update={"rationale": raw.rationale, "metadata": metadata})
		return score

	async def _build_input(self, request: ScoreRequest) -> ProviderInput:
		p = request.payload
		common: Dict[str, Any] = {
			"question_type": request.question_type,
			"include_rationale": request.include_rationale,
		}
		if request.section == Section.SPEAKING:
			transcript = str(p.get("transcript") or "")
			if not transcript and (p.get("audioUrl") or p.get("audioBase64")):
				transcript = await self._transcribe(p)
			return SpeakingInput(
				**common,
				transcript=transcript,
				reference_text=p.get("referenceText"),
			)
		if request.section == Section.WRITING:
			return WritingInput(
				**common,
				text=str(p.get("text") or p.get("answer") or ""),
				prompt=p.get("prompt"),
			)
		if request.section == Section.READING:
			return ReadingInput(
				**common,
				question=p.get("question"),
				options=list(p.get("options") or []),
				correct=_reading_correct(p),
				user_selected=_reading_selected(p),
			)
		return ListeningInput(
			**common,
			transcript=p.get("transcript"),
			target_text=p.get("targetText"),
			user_text=p.get("userText"),
		)

	async def _transcribe(self, payload: Mapping[str, Any]) -> str:
		if self.transcriber is None:
			return ""
		try:
			return await self.transcriber.transcribe(
				audio_base64=payload.get("audioBase64"),
				audio_url=payload.get("audioUrl"),
			)
		except TranscriptionError as exc:
			# Providers still run with an empty transcript
			logger.warning("Transcription failed: %s", exc)
			return ""

	# ---- health ----

	async def health(self) -> HealthReport:
		names = list(self.providers)
		statuses = await asyncio.gather(*(self._probe(name) for name in names))
		return HealthReport(
			ok=bool(statuses) and all(s.ok for s in statuses),
			providers=list(statuses),
			timestamp=datetime.now(timezone.utc).isoformat(),
		)

	async def _probe(self, name: str) -> HealthStatus:
		started = time.perf_counter()
		try:
			status = await with_timeout(self.providers[name].health(), self.health_timeout_ms)
		except Exception as exc:
			return HealthStatus(
				provider=name,
				ok=False,
				latency_ms=round((time.perf_counter() - started) * 1000),
				error=str(exc) or type(exc).__name__,
			)
		if status.provider != name:
			status = status.model_copy(update={"provider": name})
		return status

	async def aclose(self) -> None:
		for provider in self.providers.values():
			await provider.aclose()
		if self.transcriber is not None:
			await self.transcriber.aclose()


def _reading_correct(payload: Mapping[str, Any]) -> List[str]:
	if payload.get("correctOptions"):
		return [str(v) for v in payload["correctOptions"]]
	if payload.get("correctOption"):
		return [str(payload["correctOption"])]
	correct = payload.get("correct")
	if isinstance(correct, Mapping):
		return [str(v) for v in correct.values()]
	return []


def _reading_selected(payload: Mapping[str, Any]) -> List[str]:
	for key in ("userSelected", "selectedOptions"):
		if payload.get(key):
			return [str(v) for v in payload[key]]
	if payload.get("selectedOption"):
		return [str(payload["selectedOption"])]
	answers = payload.get("answers")
	if isinstance(answers, Mapping):
		return [str(v) for v in answers.values()]
	return []
