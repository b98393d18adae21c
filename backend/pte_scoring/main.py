import logging
from typing import Optional

from fastapi import FastAPI

from .orchestrator import ScoringOrchestrator
from .providers.chat_completions import openai_provider, openrouter_provider
from .providers.gemini import GeminiProvider
from .settings import Settings, settings
from .transcription import SpeechTranscriber
from .routers import health, scoring

logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logging.getLogger("httpx").setLevel(logging.WARNING)


def create_orchestrator(config: Optional[Settings] = None) -> ScoringOrchestrator:
	"""Build provider adapters once from configuration and wire them into an orchestrator."""
	config = config or settings
	providers = {
		"openai": openai_provider(
			api_key=config.openai_api_key,
			model=config.openai_model,
			base_url=config.openai_base_url,
			health_timeout_ms=config.health_timeout_ms,
		),
		"gemini": GeminiProvider(
			api_key=config.gemini_api_key,
			model=config.gemini_model,
			quality_model=config.gemini_model_quality,
			provider=config.gemini_provider,
			vertex_region=config.vertex_region,
			vertex_project=config.vertex_project,
			health_timeout_ms=config.health_timeout_ms,
		),
		"openrouter": openrouter_provider(
			api_key=config.openrouter_api_key,
			model=config.openrouter_model,
			url=config.openrouter_base_url,
			referer=config.openrouter_referer,
			title=config.openrouter_title,
			health_timeout_ms=config.health_timeout_ms,
		),
	}
	transcriber = SpeechTranscriber(language_code=config.speech_language_code) if config.speech_enabled else None
	return ScoringOrchestrator(
		providers,
		default_priority=config.provider_priority_list(),
		timeout_ms=config.scoring_timeout_ms,
		health_timeout_ms=config.health_timeout_ms,
		transcriber=transcriber,
	)


app = FastAPI(title="PTE Scoring API")
app.include_router(health.router)
app.include_router(scoring.router)

@app.get("/info")
def root():
	return {
		"status": "ok",
		"providers_configured": {
			"openai": bool(settings.openai_api_key),
			"gemini": bool(settings.gemini_api_key),
			"openrouter": bool(settings.openrouter_api_key),
		},
	}

@app.on_event("startup")
async def startup_event():
	# Provider clients are constructed once and shared by every request
	if getattr(app.state, "orchestrator", None) is None:
		app.state.orchestrator = create_orchestrator()

@app.on_event("shutdown")
async def shutdown_event():
	orchestrator = getattr(app.state, "orchestrator", None)
	if orchestrator is not None:
		await orchestrator.aclose()
