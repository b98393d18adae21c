"""
Score normalization onto the PTE Academic 0-90 scale.

Provider numbers come from LLM output and cannot be trusted to respect the
bounds they were asked for. Everything a provider reports passes through
``clamp_to_90`` before it reaches a caller; a missing or malformed number
becomes 0 instead of failing the request.
"""

from __future__ import annotations
import math
from typing import Any, Dict, Mapping, Optional

from .models import NormalizedScore, ProviderRawScore, Section

PTE_MIN = 0
PTE_MAX = 90
RATIONALE_MAX_CHARS = 2000


def _as_finite(value: Any) -> Optional[float]:
	if value is None or isinstance(value, bool):
		return None
	try:
		number = float(value)
	except (TypeError, ValueError):
		return None
	if not math.isfinite(number):
		return None
	return number


def clamp_to_90(value: Any) -> int:
	number = _as_finite(value)
	if number is None:
		return PTE_MIN
	number = max(PTE_MIN, min(PTE_MAX, number))
	# half-up rounding, PTE scores are whole numbers
	return int(math.floor(number + 0.5))


def accuracy_to_90(accuracy: float) -> int:
	"""Map a 0..1 accuracy onto 0..90."""
	number = _as_finite(accuracy)
	return clamp_to_90((number or 0.0) * PTE_MAX)


def wer_to_90(wer: float) -> int:
	"""Map a word error rate onto 0..90; lower WER scores higher."""
	number = _as_finite(wer)
	if number is None:
		return PTE_MIN
	return clamp_to_90(max(0.0, 1.0 - number) * PTE_MAX)


def normalize_subscores(subscores: Optional[Mapping[str, Any]]) -> Dict[str, int]:
	return {str(name): clamp_to_90(value) for name, value in (subscores or {}).items()}


def weighted_overall(subscores: Mapping[str, Any], weights: Mapping[str, float]) -> float:
	total = 0.0
	weight_sum = 0.0
	for name, weight in weights.items():
		if name not in subscores:
			continue
		value = _as_finite(subscores[name])
		if value is None:
			continue
		total += value * weight
		weight_sum += weight
	if weight_sum <= 0:
		return 0.0
	return total / weight_sum


def _truncate(text: Optional[str], limit: int = RATIONALE_MAX_CHARS) -> Optional[str]:
	if text is None:
		return None
	text = str(text)
	return text if len(text) <= limit else text[:limit]


def normalize_raw_score(
	raw: ProviderRawScore,
	weights: Optional[Mapping[str, float]] = None,
) -> NormalizedScore:
	"""Convert a provider's raw score into a bounded ``NormalizedScore``.

	The overall score is the provider's own overall when it reported one (a
	non-finite value clamps to 0); when it is missing, the weighted mean of the
	subscores (when weights are known), otherwise 0. Never raises on malformed numbers.
	"""
	subscores = normalize_subscores(raw.subscores)
	overall_source: Any = raw.overall
	if overall_source is None and weights and raw.subscores:
		overall_source = weighted_overall(raw.subscores, weights)
	metadata = dict(raw.meta) if raw.meta else None
	return NormalizedScore(
		overall=clamp_to_90(overall_source),
		subscores=subscores,
		rationale=_truncate(raw.rationale),
		metadata=metadata,
	)


def build_deterministic_result(
	section: Section,
	*,
	rationale: str,
	accuracy: Optional[float] = None,
	wer: Optional[float] = None,
	meta: Optional[Dict[str, Any]] = None,
) -> NormalizedScore:
	subscores: Dict[str, int] = {}
	overall = 0
	if accuracy is not None:
		accuracy_score = accuracy_to_90(accuracy)
		subscores["accuracy"] = accuracy_score
		subscores["correctness"] = accuracy_score
		overall = accuracy_score
	if wer is not None:
		wer_score = wer_to_90(wer)
		subscores["wer"] = wer_score
		if accuracy is not None:
			overall = clamp_to_90((subscores["accuracy"] + wer_score) / 2)
		else:
			overall = wer_score
	metadata: Dict[str, Any] = {"section": section.value, "provider": "deterministic"}
	metadata.update(meta or {})
	return NormalizedScore(
		overall=clamp_to_90(overall),
		subscores=subscores,
		rationale=rationale,
		metadata=metadata,
	)
