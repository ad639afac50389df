"""
Cheap pre-filter run on a transcript before it is judged.

Silence, coughs and single-syllable noise come back from the transcription
service as short junk ("um", "."). Judging those would burn a question attempt,
so they are rejected here with guidance and the student is asked to answer
again.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict

from .equivalence import normalize


class QuestionKind(str, Enum):
	MATH = "Math"
	FREE_FORM = "FreeForm"


MATH_GUIDANCE = 'Please answer with a number (e.g., "four" or "4")'
FREE_FORM_GUIDANCE = "Please give a clear answer to the question"

_MATH_QUESTION_RE = re.compile(
	r"\b(\d+\s*[+\-*/]\s*\d+|what\s+is\s+\d+|addition|subtraction|multiplication|division|how\s+many|how\s+much)\b"
)
_NUMBER_TOKEN_RE = re.compile(
	r"\b(zero|one|two|three|four|five|six|seven|eight|nine|ten|eleven|twelve|thirteen|fourteen|"
	r"fifteen|sixteen|seventeen|eighteen|nineteen|twenty|thirty|forty|fifty|sixty|seventy|eighty|ninety|\d+)\b",
	re.ASCII,
)
MATH_KEYWORDS: Tuple[str, ...] = ("plus", "minus", "equals", "is", "add", "subtract", "answer")
_ALNUM_RE = re.compile(r"[a-zA-Z0-9]")


class PlausibilityResult(BaseModel):
	model_config = ConfigDict(frozen=True)

	accepted: bool
	kind: QuestionKind
	guidance: Optional[str] = None


def classify(question_text: str) -> QuestionKind:
	"""Math if the question looks arithmetic ("2 + 2", "what is 7", "how many"), otherwise FreeForm."""
	if _MATH_QUESTION_RE.search((question_text or "").lower()):
		return QuestionKind.MATH
	return QuestionKind.FREE_FORM


def is_plausible(transcript_text: str, kind: QuestionKind) -> bool:
	text = (transcript_text or "").lower().strip()
	if kind is QuestionKind.MATH:
		if _NUMBER_TOKEN_RE.search(text):
			return True
		# Substring containment, not whole words ("this" contains "is")
		return any(word in text for word in MATH_KEYWORDS)
	normalized = normalize(transcript_text)
	return len(normalized) >= 2 and bool(_ALNUM_RE.search(normalized))


def guidance_for(kind: QuestionKind) -> str:
	return MATH_GUIDANCE if kind is QuestionKind.MATH else FREE_FORM_GUIDANCE


def check(transcript_text: str, question_text: str) -> PlausibilityResult:
	"""Classify the question and gate the transcript in one step."""
	kind = classify(question_text)
	if is_plausible(transcript_text, kind):
		return PlausibilityResult(accepted=True, kind=kind)
	return PlausibilityResult(accepted=False, kind=kind, guidance=guidance_for(kind))
