import pytest

from pte_scoring.errors import InvalidRequestError
from pte_scoring.models import Section
from pte_scoring.schemas import build_error, parse_score_request, redact_secret


def test_parse_accepts_camel_case_and_splits_priority():
	request = parse_score_request(
		{
			"section": "WRITING",
			"questionType": "write_essay",
			"payload": {"text": "An essay.", "wordCount": 2},
			"includeRationale": True,
			"providerPriority": "openai, gemini",
			"timeoutMs": 1500,
			"attemptId": "att-1",
		}
	)
	assert request.section == Section.WRITING
	assert request.question_type == "write_essay"
	assert request.include_rationale is True
	assert request.provider_priority == ["openai", "gemini"]
	assert request.timeout_ms == 1500
	assert request.attempt_id == "att-1"
	# unknown payload keys pass through
	assert request.payload == {"text": "An essay.", "wordCount": 2}


def test_parse_accepts_snake_case_and_list_priority():
	request = parse_score_request(
		{
			"section": "READING",
			"question_type": "reorder_paragraphs",
			"payload": {"userOrder": [2, 1], "correctOrder": [1, 2]},
			"provider_priority": ["gemini"],
		}
	)
	assert request.provider_priority == ["gemini"]
	assert request.payload == {"userOrder": [2, 1], "correctOrder": [1, 2]}


def test_missing_payload_defaults_to_empty_for_lenient_sections():
	request = parse_score_request({"section": "LISTENING", "questionType": "summarize_spoken_text", "payload": None})
	assert request.payload == {}


@pytest.mark.parametrize(
	"body, path",
	[
		(None, ""),
		({"section": "MATH", "questionType": "x"}, "section"),
		({"section": "WRITING"}, "questionType"),
		({"section": "WRITING", "questionType": ""}, "questionType"),
		({"section": "WRITING", "questionType": "essay", "timeoutMs": 0}, "timeoutMs"),
	],
)
def test_invalid_requests_list_their_issues(body, path):
	with pytest.raises(InvalidRequestError) as info:
		parse_score_request(body)
	assert info.value.code == "invalid_request"
	assert info.value.issues
	assert any(issue.startswith(f"{path}") for issue in info.value.issues)


def test_payload_issues_are_prefixed():
	with pytest.raises(InvalidRequestError) as info:
		parse_score_request({"section": "WRITING", "questionType": "essay", "payload": {}})
	assert info.value.issues == ["payload.text: Field required"]


def test_speaking_audio_url_must_be_a_url():
	with pytest.raises(InvalidRequestError) as info:
		parse_score_request({"section": "SPEAKING", "questionType": "read_aloud", "payload": {"audioUrl": "not a url"}})
	assert info.value.issues[0].startswith("payload.audioUrl")


def test_build_error_shape():
	body = build_error("timeout", "openai: timeout_after_8000ms").model_dump(by_alias=True, exclude_none=True)
	assert body == {"error": {"code": "timeout", "message": "openai: timeout_after_8000ms"}}


def test_redact_secret():
	assert redact_secret(None) is None
	assert redact_secret("") == ""
	assert redact_secret("short") == "***"
	assert redact_secret("sk-1234567890") == "sk-***90"
