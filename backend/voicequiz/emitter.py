from __future__ import annotations
from typing import Any, Dict

from .models import ErrorEnvelope, TranscriptionEnvelope
from .pipeline import ErrorKind, JudgingFailure, JudgingSuccess, Outcome

CORRECT_MESSAGE = "Correct! ✓"


def verdict_message(is_correct: bool, expected_answer: str) -> str:
	if is_correct:
		return CORRECT_MESSAGE
	return f"Incorrect. The answer is {expected_answer}"


def transcription_envelope(success: JudgingSuccess) -> Dict[str, Any]:
	is_correct = success.verdict.is_correct
	return TranscriptionEnvelope(
		text=success.transcript,
		is_correct=is_correct,
		message=verdict_message(is_correct, success.expected_answer),
	).model_dump(by_alias=True)


def error_envelope(failure: JudgingFailure) -> Dict[str, Any]:
	return ErrorEnvelope(message=failure.message).model_dump()


def envelope_for(outcome: Outcome) -> Dict[str, Any]:
	if isinstance(outcome, JudgingSuccess):
		return transcription_envelope(outcome)
	return error_envelope(outcome)


def busy_envelope() -> Dict[str, Any]:
	return error_envelope(JudgingFailure.of(ErrorKind.BUSY))
