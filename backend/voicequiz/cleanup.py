from __future__ import annotations
import logging
import time
from pathlib import Path

from .staging import CLIP_PREFIX, CLIP_SUFFIX

logger = logging.getLogger(__name__)


def purge_stale_clips(directory: Path, max_age_seconds: int) -> int:
	# Clips are normally deleted right after transcription; anything old here was
	# left behind by a worker that died mid-request
	if not directory.is_dir():
		return 0
	threshold = time.time() - max_age_seconds
	removed = 0
	for path in directory.glob(f"{CLIP_PREFIX}*{CLIP_SUFFIX}"):
		try:
			if path.stat().st_mtime < threshold:
				path.unlink()
				removed += 1
		except FileNotFoundError:
			continue
	if removed:
		logger.info("Purged %d stale audio clips from %s", removed, directory)
	return removed
