from __future__ import annotations
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Section(str, Enum):
	SPEAKING = "SPEAKING"
	WRITING = "WRITING"
	READING = "READING"
	LISTENING = "LISTENING"


class WireModel(BaseModel):
	# camelCase on the wire, snake_case in Python; either is accepted on input
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---- Provider-facing section inputs ----

class ProviderInput(WireModel):
	question_type: str
	include_rationale: bool = False


class SpeakingInput(ProviderInput):
	transcript: str = ""
	reference_text: Optional[str] = None


class WritingInput(ProviderInput):
	text: str
	prompt: Optional[str] = None


class ReadingInput(ProviderInput):
	question: Optional[str] = None
	options: List[str] = Field(default_factory=list)
	correct: List[str] = Field(default_factory=list)
	user_selected: List[str] = Field(default_factory=list)


class ListeningInput(ProviderInput):
	transcript: Optional[str] = None
	target_text: Optional[str] = None
	user_text: Optional[str] = None


# ---- Scores ----

class ProviderRawScore(WireModel):
	"""Adapter output before normalization. No bounds are assumed on any number."""

	overall: Optional[float] = None
	subscores: Dict[str, Optional[float]] = Field(default_factory=dict)
	rationale: Optional[str] = None
	meta: Dict[str, Any] = Field(default_factory=dict)


class NormalizedScore(WireModel):
	overall: int = Field(ge=0, le=90)
	subscores: Dict[str, int] = Field(default_factory=dict)
	rationale: Optional[str] = None
	metadata: Optional[Dict[str, Any]] = None


# ---- Health ----

class HealthStatus(WireModel):
	provider: str
	ok: bool
	model: Optional[str] = None
	latency_ms: Optional[float] = None
	error: Optional[str] = None


class HealthReport(WireModel):
	ok: bool
	providers: List[HealthStatus]
	timestamp: str
