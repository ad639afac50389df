from __future__ import annotations
from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .equivalence import MatchStrategy
from .plausibility import QuestionKind


# ============================================================================
# WEBSOCKET ENVELOPES
# ============================================================================

class QuestionPayload(BaseModel):
	# Answers stored as numbers (e.g. 4) are accepted and judged as text
	model_config = ConfigDict(coerce_numbers_to_str=True)

	question: str
	answer: str


class AudioMessage(BaseModel):
	"""Client -> server: {"type": "audio", "data": <base64>, "question": {...}}"""
	type: Literal["audio"]
	data: str
	question: QuestionPayload


class TranscriptionEnvelope(BaseModel):
	"""Server -> client on a judged answer. Serialize with by_alias=True."""
	type: Literal["transcription"] = "transcription"
	text: str
	is_correct: bool = Field(serialization_alias="isCorrect")
	message: str


class ErrorEnvelope(BaseModel):
	type: Literal["error"] = "error"
	message: str


class AudioSubmission(BaseModel):
	"""One decoded audio message. Lives only for the duration of its judging."""
	connection_id: str
	question_text: str
	expected_answer: str
	audio: bytes
	received_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# ============================================================================
# HTTP JUDGE ENDPOINT
# ============================================================================

class JudgeRequest(BaseModel):
	model_config = ConfigDict(coerce_numbers_to_str=True)

	transcript: str
	question: str
	answer: str


class JudgeResponse(BaseModel):
	accepted: bool
	question_kind: QuestionKind
	guidance: Optional[str] = None
	is_correct: Optional[bool] = None
	matched_strategy: Optional[MatchStrategy] = None
	normalized_user: Optional[str] = None
	normalized_expected: Optional[str] = None
	message: Optional[str] = None
