"""
Judging Pipeline
================

Runs one audio submission through the judging steps:

    parse -> stage -> transcribe -> plausibility gate -> equivalence

Every step returns either its value or a JudgingFailure tagged with one of the
ErrorKind values, so callers branch on results instead of catching exceptions.
The staged clip is released as soon as transcription is over, on every path.

Nothing here tracks scores or progress; the caller receives the outcome and
decides what an answered question means for its own bookkeeping.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Callable, Dict, Optional, Union

from pydantic import BaseModel, ValidationError

from .equivalence import EquivalenceVerdict, is_equivalent
from .models import AudioMessage, AudioSubmission
from .plausibility import QuestionKind, check
from .settings import settings
from .staging import AudioStager, StagingError, decode_audio
from .transcription_client import Transcript, TranscriptionError, TranscriptionGateway

logger = logging.getLogger(__name__)

GatewayFactory = Callable[[], TranscriptionGateway]


class ErrorKind(str, Enum):
	MALFORMED_MESSAGE = "MalformedMessage"
	AUDIO_TOO_SHORT = "AudioTooShort"
	NO_AUDIO_DETECTED = "NoAudioDetected"
	TRANSCRIPTION_FAILURE = "TranscriptionFailure"
	IMPLAUSIBLE_RESPONSE = "ImplausibleResponse"
	BUSY = "Busy"


ERROR_MESSAGES: Dict[ErrorKind, str] = {
	ErrorKind.MALFORMED_MESSAGE: "Error processing request",
	ErrorKind.AUDIO_TOO_SHORT: "Audio too short. Please speak longer and clearer.",
	ErrorKind.NO_AUDIO_DETECTED: "No audio detected. Please try again.",
	ErrorKind.TRANSCRIPTION_FAILURE: "Error processing audio. Please try again.",
	ErrorKind.IMPLAUSIBLE_RESPONSE: "Please give a clear answer to the question",
	ErrorKind.BUSY: "Still processing your previous answer. Please wait.",
}


class JudgingFailure(BaseModel):
	kind: ErrorKind
	message: str

	@classmethod
	def of(cls, kind: ErrorKind, message: Optional[str] = None) -> "JudgingFailure":
		return cls(kind=kind, message=message or ERROR_MESSAGES[kind])


class JudgingSuccess(BaseModel):
	transcript: str
	expected_answer: str
	question_kind: QuestionKind
	verdict: EquivalenceVerdict


Outcome = Union[JudgingSuccess, JudgingFailure]


# ============================================================================
# STEPS
# ============================================================================

def parse_submission(raw: Union[str, bytes], connection_id: str) -> Union[AudioSubmission, JudgingFailure, None]:
	"""Turn an inbound frame into an AudioSubmission.

	Returns None for well-formed messages that are not of type "audio"; those
	are not ours to answer.
	"""
	try:
		data = json.loads(raw)
	except (json.JSONDecodeError, UnicodeDecodeError):
		logger.warning("Unparseable message on connection %s", connection_id)
		return JudgingFailure.of(ErrorKind.MALFORMED_MESSAGE)
	if not isinstance(data, dict):
		return JudgingFailure.of(ErrorKind.MALFORMED_MESSAGE)
	if data.get("type") != "audio":
		logger.debug("Ignoring message of type %r on connection %s", data.get("type"), connection_id)
		return None
	try:
		message = AudioMessage.model_validate(data)
		audio = decode_audio(message.data)
	except (ValidationError, StagingError) as e:
		logger.warning("Malformed audio message on connection %s: %s", connection_id, e)
		return JudgingFailure.of(ErrorKind.MALFORMED_MESSAGE)
	return AudioSubmission(
		connection_id=connection_id,
		question_text=message.question.question,
		expected_answer=message.question.answer,
		audio=audio,
	)


async def transcribe_submission(
	submission: AudioSubmission,
	*,
	stager: AudioStager,
	gateway_factory: GatewayFactory,
	language: str,
) -> Union[Transcript, JudgingFailure]:
	with stager.stage(submission.audio) as clip:
		if clip.size == 0:
			return JudgingFailure.of(ErrorKind.NO_AUDIO_DETECTED)
		if stager.is_too_short(clip):
			logger.info("Rejected %d-byte clip on connection %s", clip.size, submission.connection_id)
			return JudgingFailure.of(ErrorKind.AUDIO_TOO_SHORT)
		try:
			client = gateway_factory()
		except Exception:
			logger.exception("Transcription gateway unavailable")
			return JudgingFailure.of(ErrorKind.TRANSCRIPTION_FAILURE)
		try:
			return await client.transcribe(clip, language)
		except TranscriptionError as e:
			logger.warning("Transcription failed on connection %s: %s", submission.connection_id, e)
			return JudgingFailure.of(ErrorKind.TRANSCRIPTION_FAILURE)
		finally:
			await _close_quietly(client)


async def _close_quietly(client: TranscriptionGateway) -> None:
	# A failing close must not replace the transcript or error already produced
	try:
		await client.aclose()
	except Exception:
		logger.warning("Closing transcription client failed", exc_info=True)


def judge_transcript(transcript: str, question_text: str, expected_answer: str, *, fuzzy_inclusive: bool = False) -> Outcome:
	plausibility = check(transcript, question_text)
	if not plausibility.accepted:
		logger.info("Rejected implausible %s answer: %r", plausibility.kind.value, transcript)
		return JudgingFailure.of(ErrorKind.IMPLAUSIBLE_RESPONSE, plausibility.guidance)
	verdict = is_equivalent(transcript, expected_answer, fuzzy_inclusive=fuzzy_inclusive)
	return JudgingSuccess(
		transcript=transcript,
		expected_answer=expected_answer,
		question_kind=plausibility.kind,
		verdict=verdict,
	)


async def judge_submission(
	submission: AudioSubmission,
	*,
	stager: AudioStager,
	gateway_factory: GatewayFactory,
	language: Optional[str] = None,
	fuzzy_inclusive: Optional[bool] = None,
) -> Outcome:
	"""Run every step for one submission and return the tagged outcome."""
	transcribed = await transcribe_submission(
		submission,
		stager=stager,
		gateway_factory=gateway_factory,
		language=language or settings.transcription_language,
	)
	if isinstance(transcribed, JudgingFailure):
		return transcribed
	logger.info("Transcribed %r for connection %s", transcribed.text, submission.connection_id)
	return judge_transcript(
		transcribed.text,
		submission.question_text,
		submission.expected_answer,
		fuzzy_inclusive=settings.fuzzy_inclusive if fuzzy_inclusive is None else fuzzy_inclusive,
	)
