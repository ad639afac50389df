import asyncio
import base64
import sys
from pathlib import Path

import pytest

# Add backend to sys.path so we can import voicequiz without installing
BACKEND_PATH = Path(__file__).resolve().parent.parent / "backend"
if BACKEND_PATH.as_posix() not in sys.path:
    sys.path.insert(0, BACKEND_PATH.as_posix())

from voicequiz.settings import settings  # noqa: E402
from voicequiz.staging import AudioStager, CLIP_PREFIX  # noqa: E402
from voicequiz.transcription_client import Transcript  # noqa: E402


# Enough bytes to clear the default 5000-byte minimum
AUDIO_BYTES = b"\x1aE\xdf\xa3" + b"\x00" * 6000


class CountingStager(AudioStager):
    """AudioStager that records every acquire and release call."""

    def __init__(self, directory: Path, *, min_bytes: int = 5000) -> None:
        super().__init__(directory, min_bytes=min_bytes)
        self.acquired = []
        self.release_calls = 0

    def acquire(self, audio):
        clip = super().acquire(audio)
        self.acquired.append(clip)
        return clip

    def release(self, clip):
        self.release_calls += 1
        super().release(clip)

    def leftover_clips(self):
        return sorted(self.directory.glob(f"{CLIP_PREFIX}*"))


class FakeGateway:
    """In-memory transcription gateway.

    texts are returned in order (the last one repeats). If gate is given the
    call waits for it; delay adds a plain sleep.
    """

    def __init__(self, *texts, error=None, gate=None, delay=0.0):
        self.texts = list(texts) or ["four"]
        self.error = error
        self.gate = gate
        self.delay = delay
        self.calls = []
        self.closed = 0

    async def transcribe(self, clip, language):
        self.calls.append({"size": clip.size, "language": language, "exists": clip.path.exists()})
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        text = self.texts[min(len(self.calls), len(self.texts)) - 1]
        return Transcript(text=text)

    async def aclose(self):
        self.closed += 1


def audio_message(question="What is 2 + 2?", answer="4", audio=AUDIO_BYTES):
    return {
        "type": "audio",
        "data": base64.b64encode(audio).decode("ascii"),
        "question": {"question": question, "answer": answer},
    }


@pytest.fixture(autouse=True)
def isolated_staging_dir(tmp_path: Path, monkeypatch):
    """Keep every stager (including the app's default one) inside tmp_path."""
    staging = tmp_path / "clips"
    monkeypatch.setattr(settings, "audio_staging_dir", staging)
    return staging


@pytest.fixture
def stager(isolated_staging_dir: Path) -> CountingStager:
    return CountingStager(isolated_staging_dir)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway("four")


@pytest.fixture
def client(stager, gateway):
    from fastapi.testclient import TestClient

    from voicequiz.main import app
    from voicequiz.routers.quiz_ws import get_gateway_factory, get_stager

    app.dependency_overrides[get_stager] = lambda: stager
    app.dependency_overrides[get_gateway_factory] = lambda: (lambda: gateway)
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()
