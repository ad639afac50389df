import tempfile
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	# Provider can be "openai" (Whisper transcription API) or "google" (Cloud Speech-to-Text)
	transcription_provider: str = Field(default="openai", validation_alias="TRANSCRIPTION_PROVIDER")
	openai_api_key: str | None = Field(default=None, validation_alias="OPENAI_API_KEY")
	transcription_model: str = Field(default="whisper-1", validation_alias="TRANSCRIPTION_MODEL")
	transcription_base_url: str = Field(default="https://api.openai.com/v1/audio/transcriptions", validation_alias="TRANSCRIPTION_BASE_URL")
	# Language hint passed to the provider with every clip
	transcription_language: str = Field(default="en", validation_alias="TRANSCRIPTION_LANGUAGE")
	transcription_timeout_seconds: float = Field(default=30.0, validation_alias="TRANSCRIPTION_TIMEOUT_SECONDS")

	# Audio staging
	min_audio_bytes: int = Field(default=5000, validation_alias="MIN_AUDIO_BYTES")
	audio_staging_dir: Path = Field(default=Path(tempfile.gettempdir()) / "voicequiz-clips", validation_alias="AUDIO_STAGING_DIR")
	# Clips older than this are left over from a crashed worker and get swept
	staging_max_age_seconds: int = Field(default=3600, validation_alias="STAGING_MAX_AGE_SECONDS")

	# Judging
	fuzzy_inclusive: bool = Field(default=False, validation_alias="FUZZY_INCLUSIVE")
	# "reject" answers a second in-flight audio message with a busy error, "queue" serializes them
	overlap_policy: str = Field(default="reject", validation_alias="OVERLAP_POLICY")

	# Server
	host: str = Field(default="0.0.0.0", validation_alias="HOST")
	port: int = Field(default=3001, validation_alias="PORT")
	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
