"""
Speech-to-text for speaking responses submitted as audio.

Uses Google Cloud Speech-to-Text. Recognition output is cleaned of the
repeated 1-3 word phrases that interim/final result overlap tends to produce.
"""

from __future__ import annotations
import asyncio
import base64
import binascii
import logging
import re
from typing import Any, Optional

import httpx
from google.api_core.exceptions import GoogleAPIError
from google.cloud import speech_v1p1beta1 as speech

from .errors import TranscriptionError

logger = logging.getLogger(__name__)


def clean_transcript(text: str) -> str:
	"""Collapse repeated 1–3 word phrases and extra whitespace in a transcript."""
	s = re.sub(r"\s+", " ", text or "").strip()
	if not s:
		return s
	patterns = [
		(r"\b(\w+\s+\w+\s+\w+)(?:\s+\1\b)+", r"\1"),
		(r"\b(\w+\s+\w+)(?:\s+\1\b)+", r"\1"),
		(r"\b(\w+)(?:\s+\1\b)+", r"\1"),
	]
	for pat, rep in patterns:
		s = re.sub(pat, rep, s, flags=re.IGNORECASE)
	return re.sub(r"\s+", " ", s).strip()


class SpeechTranscriber:
	def __init__(
		self,
		*,
		language_code: str = "en-US",
		client: Any = None,
		http_client: Optional[httpx.AsyncClient] = None,
	) -> None:
		self.language_code = language_code
		self._client = client
		self._http = http_client or httpx.AsyncClient(timeout=30)

	def _speech_client(self) -> Any:
		# Created lazily: constructing it needs Google application credentials
		if self._client is None:
			try:
				self._client = speech.SpeechClient()
			except Exception as e:
				raise TranscriptionError(f"Speech-to-Text unavailable: {e}") from e
		return self._client

	async def _load_audio(self, audio_base64: Optional[str], audio_url: Optional[str]) -> bytes:
		if audio_base64:
			try:
				return base64.b64decode(audio_base64)
			except (binascii.Error, ValueError) as e:
				raise TranscriptionError(f"Invalid base64 audio: {e}") from e
		if audio_url:
			try:
				r = await self._http.get(audio_url)
				r.raise_for_status()
			except httpx.HTTPError as e:
				raise TranscriptionError(f"Failed to download audio: {e}") from e
			return r.content
		raise TranscriptionError("No audio provided")

	def _recognize(self, content: bytes) -> str:
		audio = speech.RecognitionAudio(content=content)
		config = speech.RecognitionConfig(
			language_code=self.language_code,
			enable_automatic_punctuation=True,
			use_enhanced=True,
			model="default",
		)
		try:
			response = self._speech_client().recognize(config=config, audio=audio)
		except GoogleAPIError as e:
			raise TranscriptionError(f"Speech-to-Text API error: {e}") from e
		parts = [r.alternatives[0].transcript.strip() for r in response.results if r.alternatives]
		return " ".join(p for p in parts if p)

	async def transcribe(self, *, audio_base64: Optional[str] = None, audio_url: Optional[str] = None) -> str:
		content = await self._load_audio(audio_base64, audio_url)
		if not content:
			raise TranscriptionError("Empty audio payload received")
		# The Speech client is blocking
		text = await asyncio.to_thread(self._recognize, content)
		return clean_transcript(text)

	async def aclose(self) -> None:
		await self._http.aclose()
