"""
Answer Equivalence
==================

Decides whether a spoken (transcribed) answer matches the expected answer of a
quiz question. Everything here is pure: no I/O, no shared state, and all lookup
tables and patterns are built once at import.

Strategies are evaluated in order and the first one that holds decides the
verdict:

1. Exact      - normalized strings are identical
2. Substring  - the normalized expected answer appears inside the user's answer
3. Fuzzy      - Levenshtein similarity above 0.8 (typos, transcription slips)
4. NumberForm - "four" vs "4", "twenty-one" vs "21" in either direction

Only whole numbers 0-99 are understood; anything else passes through the
number conversions untouched and simply fails to match.
"""

from __future__ import annotations

import re
from enum import Enum
from fractions import Fraction
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict


# ============================================================================
# CONSTANTS
# ============================================================================

ONES: Dict[str, int] = {
	"zero": 0, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
	"six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
	"eleven": 11, "twelve": 12, "thirteen": 13, "fourteen": 14,
	"fifteen": 15, "sixteen": 16, "seventeen": 17, "eighteen": 18, "nineteen": 19,
}

TENS: Dict[str, int] = {
	"twenty": 20, "thirty": 30, "forty": 40, "fifty": 50,
	"sixty": 60, "seventy": 70, "eighty": 80, "ninety": 90,
}

NUMBER_WORDS: Dict[str, int] = {**ONES, **TENS}

# Reverse table: "0".."19" and "20", "30", .. "90"
DIGIT_WORDS: Dict[str, str] = {str(value): word for word, value in NUMBER_WORDS.items()}

# Similarity must be strictly greater than this (or >= when inclusive)
FUZZY_THRESHOLD = Fraction(4, 5)

_STRIP_RE = re.compile(r"[^0-9A-Za-z_\s-]")
_SPACES_RE = re.compile(r"\s+")
_HYPHEN_PAIR_RE = re.compile(r"([0-9A-Za-z_]+)-([0-9A-Za-z_]+)")
# "twenty one" spoken without the hyphen
_SPACED_PAIR_RE = re.compile(
	r"\b(" + "|".join(TENS) + r") (one|two|three|four|five|six|seven|eight|nine)\b",
	re.ASCII,
)
_NUMBER_WORD_RE = re.compile(r"\b(" + "|".join(NUMBER_WORDS) + r")\b", re.ASCII)
_TWO_DIGIT_RE = re.compile(r"\b([2-9])([1-9])\b", re.ASCII)
_DIGITS_RE = re.compile(r"\b\d+\b", re.ASCII)


class MatchStrategy(str, Enum):
	EXACT = "Exact"
	SUBSTRING = "Substring"
	FUZZY = "Fuzzy"
	NUMBER_FORM = "NumberForm"


class EquivalenceVerdict(BaseModel):
	"""
	Outcome of comparing one answer against the expected answer.

	matched_strategy is the first strategy that accepted the answer, or None
	when the answer is incorrect.
	"""
	model_config = ConfigDict(frozen=True)

	is_correct: bool
	normalized_user: str
	normalized_expected: str
	matched_strategy: Optional[MatchStrategy] = None


# ============================================================================
# NORMALIZATION AND NUMBER FORMS
# ============================================================================

def normalize(text: str) -> str:
	"""Lowercase, strip punctuation (hyphens are kept for compound numbers) and collapse whitespace."""
	s = _STRIP_RE.sub("", (text or "").lower())
	return _SPACES_RE.sub(" ", s).strip()


def _combine_pair(match: re.Match) -> str:
	tens = TENS.get(match.group(1).lower())
	ones = ONES.get(match.group(2).lower())
	if tens is None or ones is None:
		return match.group(0)
	return str(tens + ones)


def words_to_digits(text: str) -> str:
	"""
	Replace spelled-out numbers with digits.

	"twenty-one" and "twenty one" become "21" first, then every standalone
	number word is swapped for its value. Words that merely contain a number
	word ("often", "someone") are left alone.
	"""
	text = _HYPHEN_PAIR_RE.sub(_combine_pair, text)
	text = _SPACED_PAIR_RE.sub(_combine_pair, text)
	return _NUMBER_WORD_RE.sub(lambda m: str(NUMBER_WORDS[m.group(1)]), text)


def digits_to_words(text: str) -> str:
	"""
	Replace digit tokens 0-99 with words.

	Two-digit numbers with a non-zero ones digit are written hyphenated
	("21" -> "twenty-one"); 0-19 and the round tens map straight through the
	table. Other digit tokens are left as they are.
	"""
	text = _TWO_DIGIT_RE.sub(lambda m: f"{DIGIT_WORDS[m.group(1) + '0']}-{DIGIT_WORDS[m.group(2)]}", text)
	return _DIGITS_RE.sub(lambda m: DIGIT_WORDS.get(m.group(0), m.group(0)), text)


# ============================================================================
# SIMILARITY
# ============================================================================

def levenshtein_distance(a: str, b: str) -> int:
	"""Minimum number of single-character insertions, deletions or substitutions turning a into b."""
	m, n = len(a), len(b)
	matrix: List[List[int]] = [[0] * (n + 1) for _ in range(m + 1)]
	for i in range(m + 1):
		matrix[i][0] = i
	for j in range(n + 1):
		matrix[0][j] = j
	for i in range(1, m + 1):
		for j in range(1, n + 1):
			if a[i - 1] == b[j - 1]:
				matrix[i][j] = matrix[i - 1][j - 1]
			else:
				matrix[i][j] = 1 + min(
					matrix[i - 1][j],      # deletion
					matrix[i][j - 1],      # insertion
					matrix[i - 1][j - 1],  # substitution
				)
	return matrix[m][n]


def similarity(a: str, b: str) -> Fraction:
	"""
	Edit-distance similarity in [0, 1], relative to the longer string.

	Returned as an exact fraction so threshold checks at exactly 0.8 do not
	depend on float rounding. Two empty strings are fully similar.
	"""
	longer = max(len(a), len(b))
	if longer == 0:
		return Fraction(1)
	return Fraction(longer - levenshtein_distance(a, b), longer)


def passes_fuzzy_threshold(score: Fraction, *, inclusive: bool = False) -> bool:
	if inclusive:
		return score >= FUZZY_THRESHOLD
	return score > FUZZY_THRESHOLD


# ============================================================================
# STRATEGIES
# ============================================================================

def number_forms_match(normalized_user: str, normalized_expected: str) -> bool:
	"""Compare both answers after converting each to all-digits and all-words forms."""
	user_as_digits = words_to_digits(normalized_user)
	expected_as_digits = words_to_digits(normalized_expected)
	user_as_words = digits_to_words(normalized_user)
	expected_as_words = digits_to_words(normalized_expected)
	return (
		user_as_digits == expected_as_digits
		or user_as_digits == normalized_expected
		or normalized_user == expected_as_digits
		or user_as_words == expected_as_words
		or user_as_words == normalized_expected
		or normalized_user == expected_as_words
		or user_as_digits == expected_as_words
		or user_as_words == expected_as_digits
	)


def match_strategy(normalized_user: str, normalized_expected: str, *, fuzzy_inclusive: bool = False) -> Optional[MatchStrategy]:
	if normalized_user == normalized_expected:
		return MatchStrategy.EXACT
	# Only the expected answer inside a verbose user answer counts, never the reverse
	if normalized_expected in normalized_user:
		return MatchStrategy.SUBSTRING
	if passes_fuzzy_threshold(similarity(normalized_user, normalized_expected), inclusive=fuzzy_inclusive):
		return MatchStrategy.FUZZY
	if number_forms_match(normalized_user, normalized_expected):
		return MatchStrategy.NUMBER_FORM
	return None


def is_equivalent(user_transcript: str, expected_answer: str, *, fuzzy_inclusive: bool = False) -> EquivalenceVerdict:
	"""Judge a transcript against the expected answer.

	Args:
		user_transcript: Raw text returned by the transcription service
		expected_answer: Answer stored with the question
		fuzzy_inclusive: Accept similarity of exactly 0.8 as well

	Returns:
		EquivalenceVerdict carrying both normalized strings and the strategy
		that accepted the answer (None if it was not accepted)
	"""
	normalized_user = normalize(user_transcript)
	normalized_expected = normalize(expected_answer)
	strategy = match_strategy(normalized_user, normalized_expected, fuzzy_inclusive=fuzzy_inclusive)
	return EquivalenceVerdict(
		is_correct=strategy is not None,
		normalized_user=normalized_user,
		normalized_expected=normalized_expected,
		matched_strategy=strategy,
	)
