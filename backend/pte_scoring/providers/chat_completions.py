from __future__ import annotations
from typing import Any, Dict, Optional

import httpx

from ..errors import ProviderError
from ..rubrics import PromptPair
from .base import Completion, ScoringProvider


class ChatCompletionsProvider(ScoringProvider):
	"""Adapter for backends speaking the OpenAI chat-completions wire format."""

	def __init__(
		self,
		name: str,
		*,
		api_key: Optional[str],
		model: str,
		url: str,
		extra_headers: Optional[Dict[str, str]] = None,
		json_response_format: bool = False,
		client: Optional[httpx.AsyncClient] = None,
		health_timeout_ms: float = 2000,
	) -> None:
		super().__init__(model=model, api_key=api_key, health_timeout_ms=health_timeout_ms)
		self.name = name
		self.url = url
		self._extra_headers = {k: v for k, v in (extra_headers or {}).items() if v}
		self._json_response_format = json_response_format
		self._client = client or httpx.AsyncClient(timeout=30)

	def _headers(self) -> Dict[str, str]:
		headers = {
			"Authorization": f"Bearer {self.api_key}",
			"Content-Type": "application/json",
		}
		headers.update(self._extra_headers)
		return headers

	async def _complete(self, prompt: PromptPair, *, json_mode: bool, max_tokens: int) -> Completion:
		payload: Dict[str, Any] = {
			"model": self.model,
			"messages": [
				{"role": "system", "content": prompt.system},
				{"role": "user", "content": prompt.user},
			],
			"temperature": 0.2 if max_tokens > 1 else 0,
			"max_tokens": max_tokens,
		}
		if json_mode and self._json_response_format:
			payload["response_format"] = {"type": "json_object"}
		r = await self._client.post(self.url, headers=self._headers(), json=payload)
		r.raise_for_status()
		try:
			data = r.json()
			choice = data["choices"][0]
			text = choice["message"]["content"] or ""
		except (ValueError, KeyError, IndexError, TypeError) as exc:
			raise ProviderError(self.name, f"unexpected response shape: {r.text[:200]}") from exc
		return Completion(
			text=text,
			model=str(data.get("model") or self.model),
			meta={"finishReason": choice.get("finish_reason"), "requestId": data.get("id")},
		)

	async def aclose(self) -> None:
		await self._client.aclose()


def openai_provider(
	*,
	api_key: Optional[str],
	model: str = "gpt-4o-mini",
	base_url: str = "https://api.openai.com/v1",
	client: Optional[httpx.AsyncClient] = None,
	health_timeout_ms: float = 2000,
) -> ChatCompletionsProvider:
	return ChatCompletionsProvider(
		"openai",
		api_key=api_key,
		model=model,
		url=f"{base_url.rstrip('/')}/chat/completions",
		json_response_format=True,
		client=client,
		health_timeout_ms=health_timeout_ms,
	)


def openrouter_provider(
	*,
	api_key: Optional[str],
	model: str,
	url: str = "https://openrouter.ai/api/v1/chat/completions",
	referer: Optional[str] = None,
	title: Optional[str] = None,
	client: Optional[httpx.AsyncClient] = None,
	health_timeout_ms: float = 2000,
) -> ChatCompletionsProvider:
	return ChatCompletionsProvider(
		"openrouter",
		api_key=api_key,
		model=model,
		url=url,
		extra_headers={"HTTP-Referer": referer or "", "X-Title": title or ""},
		client=client,
		health_timeout_ms=health_timeout_ms,
	)
