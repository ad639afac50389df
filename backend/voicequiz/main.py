from typing import Optional

from fastapi import FastAPI

from .cleanup import purge_stale_clips
from .settings import settings
from .staging import AudioStager
from .routers import health
from .routers import judge
from .routers import quiz_ws
import asyncio
import logging
import uvicorn

logging.basicConfig(
	format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
	level=getattr(logging, settings.log_level.upper(), logging.INFO),
)
# httpx logs every request at INFO
logging.getLogger("httpx").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

app = FastAPI(title="Voice Quiz Judging API")
app.include_router(health.router)
app.include_router(judge.router)
app.include_router(quiz_ws.router)

_sweeper: Optional[asyncio.Task] = None


@app.get("/info")
def root():
	provider = settings.transcription_provider
	return {
		"status": "ok",
		"transcription_provider": provider,
		"transcription_configured": bool(settings.openai_api_key) if provider == "openai" else True,
		"min_audio_bytes": settings.min_audio_bytes,
		"overlap_policy": settings.overlap_policy,
	}


def _sweep_once() -> None:
	try:
		purge_stale_clips(AudioStager().directory, settings.staging_max_age_seconds)
	except OSError:
		logger.exception("Stale clip sweep failed")


async def _cleanup_watcher():
	while True:
		await asyncio.sleep(max(60, settings.staging_max_age_seconds))
		_sweep_once()


@app.on_event("startup")
async def startup_event():
	global _sweeper
	AudioStager().ensure_directory()
	# Clips left behind by a previous process
	_sweep_once()
	_sweeper = asyncio.create_task(_cleanup_watcher())


@app.on_event("shutdown")
async def shutdown_event():
	if _sweeper is not None:
		_sweeper.cancel()
		try:
			await _sweeper
		except asyncio.CancelledError:
			pass


def run() -> None:
	uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
	run()
