from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

import httpx

from ..errors import ProviderError
from ..rubrics import PromptPair
from .base import Completion, ScoringProvider

logger = logging.getLogger(__name__)


class GeminiProvider(ScoringProvider):
	name = "gemini"

	def __init__(
		self,
		*,
		api_key: Optional[str],
		model: str = "gemini-1.5-flash",
		quality_model: Optional[str] = "gemini-1.5-pro",
		provider: str = "ai_studio",
		vertex_region: str = "us-central1",
		vertex_project: Optional[str] = None,
		client: Optional[httpx.AsyncClient] = None,
		health_timeout_ms: float = 2000,
	) -> None:
		super().__init__(model=model, api_key=api_key, health_timeout_ms=health_timeout_ms)
		self.quality_model = quality_model if quality_model and quality_model != model else None
		self.provider = provider
		self._vertex_region = vertex_region
		self._vertex_project = vertex_project or "placeholder-project"
		# Google AI Studio takes the key as a query param, Vertex AI Express as a header
		self._auth_in_query = provider != "vertex"
		self._client = client or httpx.AsyncClient(timeout=30)

	def _endpoint(self, model: str) -> str:
		if self.provider == "vertex":
			region = self._vertex_region
			return (
				f"https://{region}-aiplatform.googleapis.com/v1/projects/{self._vertex_project}"
				f"/locations/{region}/publishers/google/models/{model}:generateContent"
			)
		return f"https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

	def _models_to_try(self, max_tokens: int) -> List[str]:
		# Health probes stay on the fast model
		if self.quality_model and max_tokens > 1:
			return [self.model, self.quality_model]
		return [self.model]

	async def _complete(self, prompt: PromptPair, *, json_mode: bool, max_tokens: int) -> Completion:
		generation_config: Dict[str, Any] = {
			"temperature": 0.2 if max_tokens > 1 else 0,
			"maxOutputTokens": max_tokens,
		}
		if json_mode:
			generation_config["responseMimeType"] = "application/json"
		payload: Dict[str, Any] = {
			"systemInstruction": {"parts": [{"text": prompt.system}]},
			"contents": [{"role": "user", "parts": [{"text": prompt.user}]}],
			"generationConfig": generation_config,
		}
		models = self._models_to_try(max_tokens)
		for index, model in enumerate(models):
			try:
				return await self._post_payload(model, payload)
			except (ProviderError, httpx.HTTPError) as err:
				if index + 1 == len(models):
					raise
				logger.info("Gemini model %s failed (%s); retrying with %s", model, err, models[index + 1])
		raise ProviderError(self.name, "no model configured")

	async def _post_payload(self, model: str, payload: Dict[str, Any]) -> Completion:
		params: Dict[str, Any] = {}
		headers: Dict[str, str] = {}
		if self._auth_in_query:
			params["key"] = self.api_key
		else:
			headers["x-goog-api-key"] = self.api_key or ""
		r = await self._client.post(self._endpoint(model), params=params, headers=headers, json=payload)
		r.raise_for_status()
		try:
			data = r.json()
			candidate = data["candidates"][0]
			text = "".join(part.get("text", "") for part in candidate["content"]["parts"])
		except (ValueError, KeyError, IndexError, TypeError, AttributeError) as exc:
			raise ProviderError(self.name, f"Unexpected Gemini response: {r.text[:200]}") from exc
		return Completion(
			text=text,
			model=model,
			meta={"finishReason": candidate.get("finishReason")},
		)

	async def aclose(self) -> None:
		await self._client.aclose()
