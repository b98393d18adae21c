from __future__ import annotations
from typing import Any, Dict, List, Optional, Type

from pydantic import AnyHttpUrl, ConfigDict, Field, PositiveInt, ValidationError, field_validator

from .errors import InvalidRequestError
from .models import NormalizedScore, Section, WireModel


# ============================================================================
# SECTION PAYLOADS
# ============================================================================

class _Payload(WireModel):
	# unknown task-specific keys pass through untouched
	model_config = ConfigDict(extra="allow")


class SpeakingPayload(_Payload):
	# either transcript or audio (transcribed when a transcriber is configured)
	transcript: Optional[str] = None
	audio_url: Optional[AnyHttpUrl] = None
	audio_base64: Optional[str] = None
	reference_text: Optional[str] = None


class WritingPayload(_Payload):
	text: str = Field(min_length=1)
	prompt: Optional[str] = None


class ReadingPayload(_Payload):
	# deterministic tasks
	selected_option: Optional[str] = None
	selected_options: Optional[List[str]] = None
	correct_option: Optional[str] = None
	correct_options: Optional[List[str]] = None
	answers: Optional[Dict[str, str]] = None
	correct: Optional[Dict[str, str]] = None
	order: Optional[List[int]] = None
	user_order: Optional[List[int]] = None
	correct_order: Optional[List[int]] = None
	# explanation-only mode
	question: Optional[str] = None
	options: Optional[List[str]] = None


class ListeningPayload(_Payload):
	# write from dictation
	target_text: Optional[str] = None
	user_text: Optional[str] = None
	# explanation context
	transcript: Optional[str] = None


PAYLOAD_MODELS: Dict[Section, Type[_Payload]] = {
	Section.SPEAKING: SpeakingPayload,
	Section.WRITING: WritingPayload,
	Section.READING: ReadingPayload,
	Section.LISTENING: ListeningPayload,
}


# ============================================================================
# REQUEST
# ============================================================================

class ScoreRequest(WireModel):
	section: Section
	question_type: str = Field(min_length=1)
	payload: Dict[str, Any] = Field(default_factory=dict)
	include_rationale: bool = False
	provider_priority: Optional[List[str]] = None
	timeout_ms: Optional[PositiveInt] = None
	attempt_id: Optional[str] = None
	user_id: Optional[str] = None

	@field_validator("provider_priority", mode="before")
	@classmethod
	def _split_priority(cls, value: Any) -> Any:
		if value is None or value == "":
			return None
		if isinstance(value, str):
			return [p.strip() for p in value.split(",") if p.strip()]
		return value

	@field_validator("payload", mode="before")
	@classmethod
	def _default_payload(cls, value: Any) -> Any:
		return {} if value is None else value


def _issues(exc: ValidationError, prefix: str = "") -> List[str]:
	out = []
	for err in exc.errors():
		path = ".".join(str(p) for p in err["loc"])
		if prefix:
			path = f"{prefix}.{path}" if path else prefix
		out.append(f"{path}: {err['msg']}")
	return out


def parse_score_request(body: Any) -> ScoreRequest:
	"""Validate an inbound scoring request, including its section-specific payload.

	Raises:
		InvalidRequestError: listing ``path: message`` for every failed field.
	"""
	try:
		request = ScoreRequest.model_validate(body)
	except ValidationError as exc:
		issues = _issues(exc)
		raise InvalidRequestError("; ".join(issues), issues=issues) from exc
	payload_model = PAYLOAD_MODELS[request.section]
	try:
		payload = payload_model.model_validate(request.payload)
	except ValidationError as exc:
		issues = _issues(exc, prefix="payload")
		raise InvalidRequestError("; ".join(issues), issues=issues) from exc
	request.payload = payload.model_dump(by_alias=True, exclude_none=True, mode="json")
	return request


# ============================================================================
# RESPONSES
# ============================================================================

class ScoreTrace(WireModel):
	section: str
	question_type: str
	attempt_id: Optional[str] = None
	user_id: Optional[str] = None
	provider_priority: Optional[List[str]] = None
	duration_ms: float
	timestamp: str


class ScoreResponse(WireModel):
	result: NormalizedScore
	trace: ScoreTrace


class ErrorBody(WireModel):
	code: str
	message: str


class ErrorResponse(WireModel):
	error: ErrorBody
	meta: Optional[Dict[str, Any]] = None


def build_error(code: str, message: str, meta: Optional[Dict[str, Any]] = None) -> ErrorResponse:
	return ErrorResponse(error=ErrorBody(code=code, message=message), meta=meta)


def redact_secret(value: Optional[str]) -> Optional[str]:
	if not value:
		return value
	if len(value) <= 8:
		return "***"
	return value[:3] + "***" + value[-2:]
