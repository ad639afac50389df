from __future__ import annotations
import asyncio
import logging
from typing import Any, Dict, Optional, Protocol

import httpx
from google.cloud import speech_v1p1beta1 as speech
from google.api_core.exceptions import GoogleAPIError
from pydantic import BaseModel

from .settings import settings
from .staging import StagedClip

logger = logging.getLogger(__name__)


class TranscriptionError(RuntimeError):
	"""The speech-to-text service failed, timed out or returned something unusable."""


class Transcript(BaseModel):
	text: str


class TranscriptionGateway(Protocol):
	async def transcribe(self, clip: StagedClip, language: str) -> Transcript: ...

	async def aclose(self) -> None: ...


class WhisperClient:
	"""OpenAI-compatible /audio/transcriptions endpoint (whisper-1 by default)."""

	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		model: Optional[str] = None,
		timeout: Optional[float] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.api_key = api_key or settings.openai_api_key
		if not self.api_key:
			raise ValueError("OPENAI_API_KEY is not configured")
		self.base_url = base_url or settings.transcription_base_url
		self.model = model or settings.transcription_model
		self._client = httpx.AsyncClient(
			timeout=timeout if timeout is not None else settings.transcription_timeout_seconds,
			transport=transport,
		)

	async def transcribe(self, clip: StagedClip, language: str) -> Transcript:
		headers = {"Authorization": f"Bearer {self.api_key}"}
		data: Dict[str, Any] = {"model": self.model, "language": language}
		files = {"file": (clip.path.name, clip.read_bytes(), "audio/webm")}
		try:
			r = await self._client.post(self.base_url, headers=headers, data=data, files=files)
			r.raise_for_status()
		except httpx.HTTPStatusError as http_err:
			raise TranscriptionError(
				f"Transcription service returned HTTP {http_err.response.status_code}"
			) from http_err
		except httpx.RequestError as net_err:
			raise TranscriptionError(f"Transcription request failed: {net_err!r}") from net_err
		try:
			text = r.json()["text"]
		except Exception as err:
			raise TranscriptionError(f"Unexpected transcription response: {r.text[:200]}") from err
		if not isinstance(text, str):
			raise TranscriptionError(f"Unexpected transcription response: {r.text[:200]}")
		return Transcript(text=text.strip())

	async def aclose(self) -> None:
		await self._client.aclose()


def _language_code(language: str) -> str:
	# Cloud Speech wants a BCP-47 region tag
	if "-" in language:
		return language
	return {"en": "en-US"}.get(language, language)


class GoogleSpeechClient:
	"""Google Cloud Speech-to-Text; the blocking recognize call runs in a worker thread."""

	def __init__(self, client: Any = None) -> None:
		self._client = client or speech.SpeechClient()

	async def transcribe(self, clip: StagedClip, language: str) -> Transcript:
		audio = speech.RecognitionAudio(content=clip.read_bytes())
		config = speech.RecognitionConfig(
			encoding=speech.RecognitionConfig.AudioEncoding.WEBM_OPUS,
			sample_rate_hertz=48000,
			language_code=_language_code(language),
			model="default",
			enable_automatic_punctuation=True,
		)
		try:
			response = await asyncio.to_thread(self._client.recognize, config=config, audio=audio)
		except GoogleAPIError as e:
			raise TranscriptionError(f"Speech-to-Text API error: {e}") from e
		parts = [
			result.alternatives[0].transcript.strip()
			for result in response.results
			if result.alternatives
		]
		return Transcript(text=" ".join(p for p in parts if p))

	async def aclose(self) -> None:
		return None


def create_gateway() -> TranscriptionGateway:
	provider = settings.transcription_provider
	if provider == "google":
		return GoogleSpeechClient()
	if provider != "openai":
		raise ValueError(f"Unknown TRANSCRIPTION_PROVIDER: {provider}")
	return WhisperClient()
