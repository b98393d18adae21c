"""Hand-written provider and transcriber doubles shared by the orchestrator and route tests."""

import asyncio
from typing import Any, Dict, List, Optional

from pte_scoring.models import HealthStatus, ProviderRawScore
from pte_scoring.providers.base import ScoringProvider


class FakeProvider(ScoringProvider):
	def __init__(
		self,
		name: str,
		*,
		result: Optional[ProviderRawScore] = None,
		error: Optional[Exception] = None,
		gate: Optional[asyncio.Event] = None,
		healthy: bool = True,
	) -> None:
		super().__init__(model=f"{name}-model", api_key="test-key")
		self.name = name
		self._result = result
		self._error = error
		self._gate = gate
		self._healthy = healthy
		self.calls: List[Any] = []
		self.closed = False

	async def _score(self, data: Any) -> ProviderRawScore:
		self.calls.append(data)
		if self._gate is not None:
			await self._gate.wait()
		if self._error is not None:
			raise self._error
		return self._result or ProviderRawScore(overall=50, meta={"provider": self.name})

	async def score_speaking(self, data):
		return await self._score(data)

	async def score_writing(self, data):
		return await self._score(data)

	async def score_reading(self, data):
		return await self._score(data)

	async def score_listening(self, data):
		return await self._score(data)

	async def health(self) -> HealthStatus:
		if self._gate is not None:
			await self._gate.wait()
		return HealthStatus(provider=self.name, ok=self._healthy, model=self.model, latency_ms=1)

	async def aclose(self) -> None:
		self.closed = True


class ExplodingHealthProvider(FakeProvider):
	def health(self):  # not async: fails before any awaitable exists
		raise RuntimeError("probe crashed")


class FakeTranscriber:
	def __init__(self, text: str = "", error: Optional[Exception] = None) -> None:
		self.text = text
		self.error = error
		self.calls: List[Dict[str, Any]] = []

	async def transcribe(self, *, audio_base64=None, audio_url=None) -> str:
		self.calls.append({"audio_base64": audio_base64, "audio_url": audio_url})
		if self.error is not None:
			raise self.error
		return self.text

	async def aclose(self) -> None:
		return None

