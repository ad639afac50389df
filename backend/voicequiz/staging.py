"""
Ephemeral storage for submitted audio clips.

A clip is written to the staging directory only for as long as the
transcription call needs it. Every clip handed out by AudioStager.stage() is
deleted when the with-block exits, whether it exits normally, through an early
return or through an exception.
"""

from __future__ import annotations

import base64
import binascii
import logging
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from .settings import settings

logger = logging.getLogger(__name__)

CLIP_PREFIX = "clip_"
CLIP_SUFFIX = ".webm"


class StagingError(ValueError):
	"""Raised when an audio payload cannot be decoded."""


class StagedClip:
	def __init__(self, path: Path, size: int) -> None:
		self.path = path
		self.size = size
		self.released = False

	def read_bytes(self) -> bytes:
		return self.path.read_bytes()

	def __repr__(self) -> str:
		return f"StagedClip(path={self.path.name!r}, size={self.size})"


def decode_audio(data: Optional[str]) -> bytes:
	"""Decode the base64 payload of an audio message.

	Characters outside the base64 alphabet are discarded. A payload with broken
	padding raises StagingError.
	"""
	try:
		return base64.b64decode(data or "", validate=False)
	except (binascii.Error, ValueError) as e:
		raise StagingError(f"Invalid base64 audio payload: {e}") from e


class AudioStager:
	def __init__(self, directory: Optional[Path] = None, *, min_bytes: Optional[int] = None) -> None:
		self.directory = Path(directory or settings.audio_staging_dir)
		self.min_bytes = settings.min_audio_bytes if min_bytes is None else min_bytes

	def ensure_directory(self) -> None:
		self.directory.mkdir(parents=True, exist_ok=True)

	def acquire(self, audio: bytes) -> StagedClip:
		self.ensure_directory()
		path = self.directory / f"{CLIP_PREFIX}{uuid.uuid4().hex}{CLIP_SUFFIX}"
		path.write_bytes(audio)
		clip = StagedClip(path, path.stat().st_size)
		logger.debug("Staged %s", clip)
		return clip

	def release(self, clip: StagedClip) -> None:
		if clip.released:
			return
		clip.released = True
		try:
			clip.path.unlink()
		except FileNotFoundError:
			logger.warning("Staged clip %s was already gone", clip.path.name)
		else:
			logger.debug("Released %s", clip)

	def is_too_short(self, clip: StagedClip) -> bool:
		return clip.size < self.min_bytes

	@contextmanager
	def stage(self, audio: bytes) -> Iterator[StagedClip]:
		clip = self.acquire(audio)
		try:
			yield clip
		finally:
			self.release(clip)
