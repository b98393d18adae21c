from pte_scoring.deterministic import (
	levenshtein,
	normalize_answer,
	score_listening_write_from_dictation,
	score_reading_fill_in_blanks,
	score_reading_mcq_multiple,
	score_reading_mcq_single,
	score_reading_reorder_paragraphs,
	try_deterministic,
)
from pte_scoring.models import Section


def test_normalize_answer_ignores_case_punctuation_and_spacing():
	assert normalize_answer("  The Cat's, HAT!  ") == "the cat's hat"
	assert normalize_answer(None) == ""


def test_levenshtein_counts_token_edits():
	assert levenshtein(["a", "b", "c"], ["a", "c"]) == 1
	assert levenshtein([], ["x", "y"]) == 2
	assert levenshtein(["same"], ["same"]) == 0


def test_mcq_single():
	assert score_reading_mcq_single("B", " b ").overall == 90
	assert score_reading_mcq_single("A", "B").overall == 0


def test_mcq_multiple_partial_credit_with_penalty():
	result = score_reading_mcq_multiple(["A", "B", "D"], ["A", "B", "C"])
	# (2 - 1) / 3
	assert result.overall == 30
	assert result.metadata["tp"] == 2
	assert result.metadata["fp"] == 1
	assert score_reading_mcq_multiple(["D", "E"], ["A"]).overall == 0


def test_fill_in_blanks():
	result = score_reading_fill_in_blanks({"1": "growth", "2": "decline"}, {"1": "Growth", "2": "rise"})
	assert result.overall == 45
	assert result.metadata["wrong"] == [{"key": "2", "user": "decline", "expected": "rise"}]


def test_reorder_paragraphs_pairwise_agreement():
	assert score_reading_reorder_paragraphs([1, 2, 3], [1, 2, 3]).overall == 90
	# pairs (2,1) wrong, (2,3) right, (1,3) right -> 2/3
	assert score_reading_reorder_paragraphs([2, 1, 3], [1, 2, 3]).overall == 60
	assert score_reading_reorder_paragraphs([], []).overall == 0
	assert score_reading_reorder_paragraphs([4], [4]).overall == 90


def test_write_from_dictation():
	perfect = score_listening_write_from_dictation("The lecture starts at nine.", "the lecture starts at nine")
	assert perfect.overall == 90
	assert perfect.subscores["wer"] == 90

	partial = score_listening_write_from_dictation("students must submit essays online", "students submit essay online")
	assert partial.metadata["edits"] == 2
	assert 0 < partial.overall < 90


def test_try_deterministic_routes_objective_types():
	single = try_deterministic(
		Section.READING,
		"reading_multiple_choice_single",
		{"selectedOption": "A", "correctOption": "A"},
	)
	assert single is not None and single.overall == 90

	reorder = try_deterministic(Section.READING, "reorder_paragraphs", {"order": [1, 2], "correctOrder": [1, 2]})
	assert reorder is not None and reorder.overall == 90

	wfd = try_deterministic(Section.LISTENING, "write_from_dictation", {"targetText": "a b", "userText": "a b"})
	assert wfd is not None and wfd.overall == 90


def test_try_deterministic_returns_none_for_subjective_or_incomplete():
	assert try_deterministic(Section.WRITING, "essay", {"text": "..."}) is None
	assert try_deterministic(Section.SPEAKING, "read_aloud", {"transcript": "..."}) is None
	assert try_deterministic(Section.READING, "multiple_choice_single", {"question": "q"}) is None
	assert try_deterministic(Section.LISTENING, "summarize_spoken_text", {"transcript": "t"}) is None
