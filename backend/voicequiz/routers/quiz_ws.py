"""
Quiz WebSocket
==============

Per-connection message loop for spoken answers. The client sends

    {"type": "audio", "data": <base64>, "question": {"question": ..., "answer": ...}}

and gets back either a transcription envelope with the verdict or an error
envelope. Any failure is turned into an error envelope; the connection stays
open.

Only one submission is judged at a time per connection. With the default
"reject" overlap policy, an audio message that arrives while another is being
judged is answered with a busy error and dropped. With "queue" the loop waits
for the in-flight submission before taking the next one.

If the client disconnects mid-submission, the submission still runs to the end
so its staged clip is released; the verdict is discarded.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from ..emitter import busy_envelope, envelope_for
from ..pipeline import ErrorKind, GatewayFactory, JudgingFailure, Outcome, judge_submission, parse_submission
from ..models import AudioSubmission
from ..settings import settings
from ..staging import AudioStager
from ..transcription_client import create_gateway

logger = logging.getLogger(__name__)

router = APIRouter(tags=["quiz"])

OVERLAP_REJECT = "reject"
OVERLAP_QUEUE = "queue"


def get_stager() -> AudioStager:
	return AudioStager()


def get_gateway_factory() -> GatewayFactory:
	return create_gateway


class SessionState(str, Enum):
	IDLE = "idle"
	AWAITING_TRANSCRIPT = "awaiting_transcript"
	RESPONDED = "responded"


class QuizSession:
	def __init__(
		self,
		websocket: WebSocket,
		*,
		stager: AudioStager,
		gateway_factory: GatewayFactory,
		overlap_policy: Optional[str] = None,
	) -> None:
		self.websocket = websocket
		self.stager = stager
		self.gateway_factory = gateway_factory
		self.overlap_policy = overlap_policy or settings.overlap_policy
		self.connection_id = uuid.uuid4().hex
		self.state = SessionState.IDLE
		self.closed = False
		self._inflight: Optional[asyncio.Task] = None

	async def run(self) -> None:
		logger.info("Client connected (%s)", self.connection_id)
		try:
			while True:
				message = await self.websocket.receive()
				if message["type"] == "websocket.disconnect":
					break
				raw = message.get("text")
				if raw is None:
					raw = message.get("bytes") or b""
				try:
					await self.on_message(raw)
				except Exception:
					logger.exception("Unexpected error handling message on %s", self.connection_id)
					await self.send(envelope_for(JudgingFailure.of(ErrorKind.MALFORMED_MESSAGE)))
		except WebSocketDisconnect:
			pass
		finally:
			self.closed = True
			logger.info("Client disconnected (%s)", self.connection_id)
			if self._inflight is not None and not self._inflight.done():
				await self._inflight

	async def on_message(self, raw: Any) -> None:
		parsed = parse_submission(raw, self.connection_id)
		if parsed is None:
			return
		if isinstance(parsed, JudgingFailure):
			await self.send(envelope_for(parsed))
			return
		if self._inflight is not None and not self._inflight.done():
			if self.overlap_policy == OVERLAP_QUEUE:
				await self._inflight
			else:
				logger.info("Busy: dropped overlapping audio message on %s", self.connection_id)
				await self.send(busy_envelope())
				return
		self.state = SessionState.AWAITING_TRANSCRIPT
		self._inflight = asyncio.create_task(self._process(parsed))

	async def _process(self, submission: AudioSubmission) -> None:
		logger.info("Processing audio for question: %s", submission.question_text)
		outcome: Outcome
		try:
			outcome = await judge_submission(
				submission,
				stager=self.stager,
				gateway_factory=self.gateway_factory,
			)
		except Exception:
			logger.exception("Unexpected error judging submission on %s", self.connection_id)
			outcome = JudgingFailure.of(ErrorKind.TRANSCRIPTION_FAILURE)
		if isinstance(outcome, JudgingFailure):
			logger.info("Submission on %s failed: %s", self.connection_id, outcome.kind.value)
		else:
			logger.info(
				"Submission on %s judged %s (%s)",
				self.connection_id,
				"correct" if outcome.verdict.is_correct else "incorrect",
				outcome.verdict.matched_strategy.value if outcome.verdict.matched_strategy else "no match",
			)
		self.state = SessionState.RESPONDED
		await self.send(envelope_for(outcome))
		self.state = SessionState.IDLE

	async def send(self, payload: Dict[str, Any]) -> None:
		if self.closed:
			logger.info("Connection %s closed; discarding %s envelope", self.connection_id, payload.get("type"))
			return
		try:
			await self.websocket.send_json(payload)
		except (WebSocketDisconnect, RuntimeError) as e:
			self.closed = True
			logger.info("Could not deliver envelope to %s: %r", self.connection_id, e)


@router.websocket("/")
@router.websocket("/ws")
async def quiz_socket(
	websocket: WebSocket,
	stager: AudioStager = Depends(get_stager),
	gateway_factory: GatewayFactory = Depends(get_gateway_factory),
):
	await websocket.accept()
	session = QuizSession(websocket, stager=stager, gateway_factory=gateway_factory)
	await session.run()
