import base64
from types import SimpleNamespace

import httpx
import pytest
from google.api_core.exceptions import ServiceUnavailable

from pte_scoring.errors import TranscriptionError
from pte_scoring.transcription import SpeechTranscriber, clean_transcript


class _FakeSpeechClient:
	def __init__(self, transcripts=None, error=None):
		self.transcripts = transcripts or []
		self.error = error
		self.requests = []

	def recognize(self, *, config, audio):
		self.requests.append((config, audio))
		if self.error is not None:
			raise self.error
		results = [SimpleNamespace(alternatives=[SimpleNamespace(transcript=t)]) for t in self.transcripts]
		return SimpleNamespace(results=results)


def test_clean_transcript_collapses_repeats():
	assert clean_transcript("the the cat  sat sat down") == "the cat sat down"
	assert clean_transcript("in the end in the end it worked") == "in the end it worked"
	assert clean_transcript("") == ""


@pytest.mark.asyncio
async def test_transcribe_base64_audio() -> None:
	client = _FakeSpeechClient(["The graph shows", " rising sales rising sales "])
	transcriber = SpeechTranscriber(language_code="en-GB", client=client)

	text = await transcriber.transcribe(audio_base64=base64.b64encode(b"RIFF....WAVE").decode())

	assert text == "The graph shows rising sales"
	config, audio = client.requests[0]
	assert config.language_code == "en-GB"
	assert audio.content == b"RIFF....WAVE"
	await transcriber.aclose()


@pytest.mark.asyncio
async def test_transcribe_downloads_audio_url() -> None:
	http = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, content=b"audio-bytes")))
	client = _FakeSpeechClient(["hello"])
	transcriber = SpeechTranscriber(client=client, http_client=http)

	assert await transcriber.transcribe(audio_url="https://cdn.example.test/a.wav") == "hello"
	assert client.requests[0][1].content == b"audio-bytes"


@pytest.mark.asyncio
async def test_transcribe_failures_are_transcription_errors() -> None:
	http = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(404)))
	transcriber = SpeechTranscriber(client=_FakeSpeechClient(), http_client=http)
	with pytest.raises(TranscriptionError, match="download"):
		await transcriber.transcribe(audio_url="https://cdn.example.test/missing.wav")

	with pytest.raises(TranscriptionError, match="No audio"):
		await transcriber.transcribe()

	with pytest.raises(TranscriptionError, match="base64"):
		await transcriber.transcribe(audio_base64="abc")

	failing = SpeechTranscriber(client=_FakeSpeechClient(error=ServiceUnavailable("down")))
	with pytest.raises(TranscriptionError, match="Speech-to-Text API error"):
		await failing.transcribe(audio_base64=base64.b64encode(b"x").decode())
