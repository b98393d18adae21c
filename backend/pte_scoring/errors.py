from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional


class ScoringError(Exception):
	"""Base class for errors that may cross the scoring core boundary."""

	code: str = "internal_error"


class InvalidRequestError(ScoringError):
	code = "invalid_request"

	def __init__(self, message: str, *, issues: Optional[List[str]] = None) -> None:
		super().__init__(message)
		self.issues = issues or []


class ProviderError(ScoringError):
	"""A single provider call failed (network, non-2xx, unparseable or invalid output)."""

	code = "provider_error"

	def __init__(self, provider: Optional[str], cause: object) -> None:
		self.provider = provider
		self.cause = cause
		label = provider or "provider"
		super().__init__(f"{label}: {cause}")


class ScoringTimeoutError(ProviderError, TimeoutError):
	code = "timeout"

	def __init__(self, timeout_ms: float, provider: Optional[str] = None) -> None:
		self.timeout_ms = timeout_ms
		super().__init__(provider, f"timeout_after_{_format_ms(timeout_ms)}ms")


@dataclass
class ProviderAttempt:
	provider: str
	error: Exception

	@property
	def reason(self) -> str:
		if isinstance(self.error, ProviderError):
			return str(self.error.cause)
		return str(self.error) or type(self.error).__name__


class AllProvidersExhaustedError(ScoringError):
	code = "providers_exhausted"

	def __init__(self, attempts: List[ProviderAttempt]) -> None:
		self.attempts = list(attempts)
		if self.attempts:
			detail = "; ".join(f"{a.provider}: {a.reason}" for a in self.attempts)
		else:
			detail = "no providers available"
		super().__init__(f"All scoring providers failed ({detail})")


def _format_ms(value: float) -> str:
	if float(value).is_integer():
		return str(int(value))
	return f"{value:g}"


class TranscriptionError(ScoringError):
	code = "transcription_error"
