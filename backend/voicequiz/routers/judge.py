from fastapi import APIRouter

from ..emitter import verdict_message
from ..models import JudgeRequest, JudgeResponse
from ..pipeline import JudgingFailure, judge_transcript
from ..plausibility import classify
from ..settings import settings

router = APIRouter(prefix="/judge", tags=["judge"])


@router.post("", response_model=JudgeResponse)
def judge(req: JudgeRequest):
	"""Judge an already-transcribed (or typed) answer with the same rules as the spoken path.

	An implausible answer comes back with accepted=False and guidance; it was
	not judged and should not count as an attempt.
	"""
	outcome = judge_transcript(
		req.transcript.strip(),
		req.question,
		req.answer,
		fuzzy_inclusive=settings.fuzzy_inclusive,
	)
	if isinstance(outcome, JudgingFailure):
		return JudgeResponse(accepted=False, question_kind=classify(req.question), guidance=outcome.message)
	verdict = outcome.verdict
	return JudgeResponse(
		accepted=True,
		question_kind=outcome.question_kind,
		is_correct=verdict.is_correct,
		matched_strategy=verdict.matched_strategy,
		normalized_user=verdict.normalized_user,
		normalized_expected=verdict.normalized_expected,
		message=verdict_message(verdict.is_correct, req.answer),
	)
