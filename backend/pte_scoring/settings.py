from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	# OpenAI (chat completions REST)
	openai_api_key: str | None = Field(default=None, validation_alias="OPENAI_API_KEY")
	openai_model: str = Field(default="gpt-4o-mini", validation_alias="OPENAI_MODEL")
	openai_base_url: str = Field(default="https://api.openai.com/v1", validation_alias="OPENAI_BASE_URL")

	gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
	# Provider can be "vertex" (Vertex AI Express) or "ai_studio" (Generative Language API)
	gemini_provider: str = Field(default="ai_studio", validation_alias="GEMINI_PROVIDER")
	# Fast model is tried first, quality model once if the fast one fails
	gemini_model: str = Field(default="gemini-1.5-flash", validation_alias="GEMINI_MODEL")
	gemini_model_quality: str | None = Field(default="gemini-1.5-pro", validation_alias="GEMINI_MODEL_QUALITY")
	# Vertex configuration
	vertex_region: str = Field(default="us-central1", validation_alias="GEMINI_VERTEX_REGION")
	vertex_project: str | None = Field(default=None, validation_alias="GEMINI_VERTEX_PROJECT")

	# OpenRouter (third provider, OpenAI-compatible)
	openrouter_api_key: str | None = Field(default=None, validation_alias="OPENROUTER_API_KEY")
	openrouter_model: str = Field(default="openai/gpt-4o-mini", validation_alias="OPENROUTER_MODEL")
	openrouter_base_url: str = Field(default="https://openrouter.ai/api/v1/chat/completions", validation_alias="OPENROUTER_BASE_URL")
	openrouter_referer: str = Field(default="https://localhost", validation_alias="OPENROUTER_HTTP_REFERER")
	openrouter_title: str = Field(default="PTE Practice Scoring", validation_alias="OPENROUTER_TITLE")

	# Orchestration. Priority is a comma list, e.g. "openai,gemini,openrouter"; empty means per-section default
	scoring_provider_priority: str | None = Field(default=None, validation_alias="PTE_SCORING_PROVIDER_PRIORITY")
	scoring_timeout_ms: int = Field(default=8000, validation_alias="PTE_SCORING_TIMEOUT_MS")
	health_timeout_ms: int = Field(default=2000, validation_alias="PTE_HEALTH_TIMEOUT_MS")

	# Speaking audio transcription (Google Cloud Speech-to-Text)
	speech_enabled: bool = Field(default=True, validation_alias="SPEECH_ENABLED")
	speech_language_code: str = Field(default="en-US", validation_alias="SPEECH_LANGUAGE_CODE")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

	def provider_priority_list(self) -> List[str]:
		raw = (self.scoring_provider_priority or "").strip()
		if not raw:
			return []
		return [p.strip().lower() for p in raw.split(",") if p.strip()]

settings = Settings()
