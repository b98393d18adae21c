from __future__ import annotations
import json
from dataclasses import dataclass
from typing import Dict, List, Optional

from .models import Section


DEFAULT_WEIGHTS: Dict[Section, Dict[str, float]] = {
	Section.SPEAKING: {
		"content": 0.4,
		"pronunciation": 0.3,
		"fluency": 0.2,
		"grammar": 0.05,
		"vocabulary": 0.05,
	},
	Section.WRITING: {
		"content": 0.35,
		"structure": 0.15,
		"coherence": 0.15,
		"grammar": 0.15,
		"vocabulary": 0.1,
		"spelling": 0.1,
	},
	Section.READING: {"correctness": 1.0},
	Section.LISTENING: {"correctness": 0.7, "wer": 0.3},
}

SPEAKING_DIMENSIONS = tuple(DEFAULT_WEIGHTS[Section.SPEAKING])
WRITING_DIMENSIONS = tuple(DEFAULT_WEIGHTS[Section.WRITING])


@dataclass(frozen=True)
class PromptPair:
	system: str
	user: str


def get_default_weights(section: Section) -> Dict[str, float]:
	return dict(DEFAULT_WEIGHTS.get(section, {}))


def _rationale_line(include_rationale: bool) -> str:
	if include_rationale:
		return '  "rationale": "string"'
	return '  "rationale": ""'


def _schema_block(keys: tuple, include_rationale: bool) -> str:
	lines = ["{", '  "overall": number,']
	lines += [f'  "{k}": number,' for k in keys]
	lines.append(_rationale_line(include_rationale))
	lines.append("}")
	return "\n".join(lines)


def build_speaking_prompt(
	question_type: str,
	transcript: str,
	*,
	reference_text: Optional[str] = None,
	include_rationale: bool = False,
) -> PromptPair:
	system = " ".join([
		"You are a certified Pearson PTE Academic examiner.",
		"Score the SPEAKING response strictly per PTE criteria on a 0–90 scale for each dimension.",
		f"Return ONLY strict JSON (no markdown) with keys: overall, {', '.join(SPEAKING_DIMENSIONS)}, rationale.",
		"Each dimension must be 0–90 integer. overall is weighted per PTE norms.",
		"Be concise. Keep rationale under 5 sentences." if include_rationale else "Leave rationale as an empty string.",
	])
	user = "\n".join([
		f"Task: {question_type}",
		f"Reference/Prompt Text: {reference_text}" if reference_text else "No reference text provided.",
		f'Transcript: """{transcript}"""',
		"",
		"JSON schema:",
		_schema_block(SPEAKING_DIMENSIONS, include_rationale),
	])
	return PromptPair(system=system, user=user)


def build_writing_prompt(
	question_type: str,
	text: str,
	*,
	prompt: Optional[str] = None,
	include_rationale: bool = False,
) -> PromptPair:
	system = " ".join([
		"You are a certified Pearson PTE Academic examiner.",
		"Score the WRITING response strictly per PTE criteria on a 0–90 scale for each dimension.",
		f"Return ONLY strict JSON (no markdown) with keys: overall, {', '.join(WRITING_DIMENSIONS)}, rationale.",
		"Each dimension must be 0–90 integer. overall should reflect PTE scaling.",
		"Keep rationale under 5 sentences." if include_rationale else "Leave rationale as an empty string.",
	])
	user = "\n".join([
		f"Task: {question_type}",
		f'Prompt: """{prompt}"""' if prompt else "No prompt text provided.",
		f'Student Response: """{text}"""',
		"",
		"JSON schema:",
		_schema_block(WRITING_DIMENSIONS, include_rationale),
	])
	return PromptPair(system=system, user=user)


def build_reading_explanation_prompt(
	question_type: str,
	*,
	question: str = "",
	options: Optional[List[str]] = None,
	correct: Optional[List[str]] = None,
	user_selected: Optional[List[str]] = None,
) -> PromptPair:
	system = " ".join([
		"You are a PTE Reading coach. Explain succinctly why the correct answers are correct.",
		"Keep response under 5 sentences. No personal data. Neutral tone.",
		"Return ONLY JSON with key: rationale (string, 1–3 sentences).",
	])
	user = "\n".join([
		f"Task: {question_type}",
		f'Question: """{question}"""',
		f"Options: {json.dumps(options or [], ensure_ascii=False)}",
		f"Correct: {json.dumps(correct or [], ensure_ascii=False)}",
		f"UserSelected: {json.dumps(user_selected or [], ensure_ascii=False)}",
		"",
		"JSON schema:",
		'{ "rationale": "string" }',
	])
	return PromptPair(system=system, user=user)


def build_listening_explanation_prompt(
	question_type: str,
	*,
	transcript: Optional[str] = None,
	target_text: Optional[str] = None,
	user_text: Optional[str] = None,
) -> PromptPair:
	system = " ".join([
		"You are a PTE Listening coach. Provide a brief explanation and key differences.",
		"Return ONLY JSON with key: rationale.",
		"Keep under 4 sentences.",
	])
	lines = [f"Task: {question_type}"]
	if transcript:
		lines.append(f'Audio Transcript: """{transcript}"""')
	if target_text:
		lines.append(f'Target Text: """{target_text}"""')
	if user_text:
		lines.append(f'User Text: """{user_text}"""')
	lines += ["", "JSON schema:", '{ "rationale": "string" }']
	return PromptPair(system=system, user="\n".join(lines))
