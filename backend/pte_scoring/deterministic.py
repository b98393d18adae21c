"""
Deterministic scoring for objective PTE tasks.

Covered task types:
- Reading: multiple choice (single), multiple choice (multiple) with partial
  credit, fill in the blanks (reading and reading & writing), reorder paragraphs
- Listening: write from dictation (word error rate)
"""

from __future__ import annotations
import re
import unicodedata
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .models import NormalizedScore, Section
from .normalize import build_deterministic_result


_NON_WORD = re.compile(r"[^\w\s']|_")
_SPACES = re.compile(r"\s+")


def normalize_answer(value: Any) -> str:
	text = unicodedata.normalize("NFKD", str(value or "")).lower()
	text = _NON_WORD.sub(" ", text)
	return _SPACES.sub(" ", text).strip()


def tokenize_words(value: Any) -> List[str]:
	norm = normalize_answer(value)
	return norm.split(" ") if norm else []


def levenshtein(a: Sequence[str], b: Sequence[str]) -> int:
	"""Edit distance over token sequences; every edit costs 1."""
	previous = list(range(len(b) + 1))
	for i, token_a in enumerate(a, start=1):
		current = [i] + [0] * len(b)
		for j, token_b in enumerate(b, start=1):
			cost = 0 if token_a == token_b else 1
			current[j] = min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost)
		previous = current
	return previous[len(b)]


def score_reading_mcq_single(selected_option: str, correct_option: str) -> NormalizedScore:
	correct = normalize_answer(selected_option) == normalize_answer(correct_option)
	rationale = (
		"Selected option matches the correct answer."
		if correct
		else "Selected option does not match the correct answer."
	)
	return build_deterministic_result(
		Section.READING,
		accuracy=1.0 if correct else 0.0,
		rationale=rationale,
		meta={"task": "READING_MCQ_SINGLE"},
	)


def score_reading_mcq_multiple(selected_options: Sequence[str], correct_options: Sequence[str]) -> NormalizedScore:
	"""Partial credit with penalty: accuracy = max(0, (TP - FP) / |correct|)."""
	selected = {normalize_answer(s) for s in selected_options}
	correct = {normalize_answer(c) for c in correct_options}
	tp = len(selected & correct)
	fp = len(selected - correct)
	accuracy = min(1.0, max(0.0, (tp - fp) / max(1, len(correct))))
	rationale = (
		f"Partial credit: TP={tp}, FP={fp}, Correct={len(correct)}; "
		f"accuracy=max(0,(TP-FP)/|Correct|)={accuracy:.3f}"
	)
	return build_deterministic_result(
		Section.READING,
		accuracy=accuracy,
		rationale=rationale,
		meta={"task": "READING_MCQ_MULTIPLE", "tp": tp, "fp": fp, "correctCount": len(correct)},
	)


def score_reading_fill_in_blanks(answers: Mapping[str, Any], correct: Mapping[str, Any]) -> NormalizedScore:
	expected_by_key = {str(k): v for k, v in correct.items()}
	answers = {str(k): v for k, v in (answers or {}).items()}
	total = max(1, len(expected_by_key))
	right = 0
	wrong: List[Dict[str, Any]] = []
	for key, expected in expected_by_key.items():
		user = answers.get(key)
		if normalize_answer(user) == normalize_answer(expected):
			right += 1
		else:
			wrong.append({"key": key, "user": user, "expected": expected})
	return build_deterministic_result(
		Section.READING,
		accuracy=right / total,
		rationale=f"Filled correctly {right}/{total} blanks.",
		meta={"task": "READING_FILL_IN_BLANKS", "total": total, "correct": right, "wrong": wrong},
	)


def score_reading_reorder_paragraphs(user_order: Sequence[int], correct_order: Sequence[int]) -> NormalizedScore:
	"""Pairwise order agreement between the user's order and the correct one."""
	n = min(len(user_order), len(correct_order))
	if n <= 1:
		return build_deterministic_result(
			Section.READING,
			accuracy=1.0 if n == 1 else 0.0,
			rationale="Single paragraph is trivially correct." if n == 1 else "No paragraphs provided.",
			meta={"task": "READING_REORDER", "pairs": 0, "correctPairs": 0},
		)
	position = {paragraph: index for index, paragraph in enumerate(correct_order[:n])}
	placed = [p for p in user_order if p in position]
	agree = 0
	pairs = 0
	for i in range(len(placed)):
		for j in range(i + 1, len(placed)):
			pairs += 1
			if position[placed[i]] < position[placed[j]]:
				agree += 1
	accuracy = agree / pairs if pairs else 0.0
	return build_deterministic_result(
		Section.READING,
		accuracy=accuracy,
		rationale=f"Pairwise order accuracy: {agree}/{pairs} correctly ordered pairs.",
		meta={"task": "READING_REORDER", "pairs": pairs, "correctPairs": agree},
	)


def score_listening_write_from_dictation(target_text: str, user_text: str) -> NormalizedScore:
	reference = tokenize_words(target_text)
	hypothesis = tokenize_words(user_text)
	edits = levenshtein(reference, hypothesis)
	wer = edits / len(reference) if reference else 1.0
	accuracy = max(0.0, 1.0 - wer)
	return build_deterministic_result(
		Section.LISTENING,
		accuracy=accuracy,
		wer=wer,
		rationale=f"WER={wer:.3f}; accuracy≈{accuracy:.3f} (after normalization, higher is better).",
		meta={"task": "LISTENING_WFD", "refLen": len(reference), "edits": edits},
	)


def try_deterministic(section: Section, question_type: str, payload: Mapping[str, Any]) -> Optional[NormalizedScore]:
	"""Score objective task types without a provider; ``None`` when the task is subjective."""
	qt = (question_type or "").lower()
	payload = payload or {}
	if section == Section.READING:
		if "multiple_choice_single" in qt:
			selected, expected = payload.get("selectedOption"), payload.get("correctOption")
			if selected and expected:
				return score_reading_mcq_single(selected, expected)
		if "multiple_choice_multiple" in qt:
			selected, expected = payload.get("selectedOptions"), payload.get("correctOptions")
			if isinstance(selected, list) and isinstance(expected, list):
				return score_reading_mcq_multiple(selected, expected)
		if "fill_in_blanks" in qt:
			answers, expected = payload.get("answers"), payload.get("correct")
			if isinstance(answers, Mapping) and isinstance(expected, Mapping) and expected:
				return score_reading_fill_in_blanks(answers, expected)
		if "reorder_paragraphs" in qt:
			user_order = payload.get("userOrder")
			if not isinstance(user_order, list):
				user_order = payload.get("order")
			correct_order = payload.get("correctOrder")
			if isinstance(user_order, list) and isinstance(correct_order, list):
				return score_reading_reorder_paragraphs(user_order, correct_order)
		return None
	if section == Section.LISTENING:
		if "write_from_dictation" in qt or "wfd" in qt:
			target, typed = payload.get("targetText"), payload.get("userText")
			if isinstance(target, str) and isinstance(typed, str):
				return score_listening_write_from_dictation(target, typed)
		return None
	return None
