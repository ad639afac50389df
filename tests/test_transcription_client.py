"""
Unit Tests for the transcription gateways

The OpenAI client is exercised against httpx.MockTransport; the Google client
gets a fake SpeechClient.
"""

import asyncio
import json
from types import SimpleNamespace

import httpx
import pytest
from google.api_core.exceptions import GoogleAPIError

from voicequiz.settings import settings
from voicequiz.staging import AudioStager
from voicequiz.transcription_client import (
    GoogleSpeechClient,
    TranscriptionError,
    WhisperClient,
    create_gateway,
)

BASE_URL = "https://stt.example.test/v1/audio/transcriptions"


@pytest.fixture
def clip(tmp_path):
    stager = AudioStager(tmp_path)
    with stager.stage(b"\x1aE\xdf\xa3" + b"\x01" * 64) as staged:
        yield staged


def _whisper(handler, **kwargs):
    return WhisperClient("sk-test", base_url=BASE_URL, transport=httpx.MockTransport(handler), **kwargs)


def _run(client, clip, language="en"):
    async def go():
        try:
            return await client.transcribe(clip, language)
        finally:
            await client.aclose()

    return asyncio.run(go())


class TestWhisperClient:

    def test_transcribe_when_ok_then_returns_trimmed_text(self, clip):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = request.read()
            return httpx.Response(200, json={"text": "  four \n"})

        transcript = _run(_whisper(handler), clip)

        assert transcript.text == "four"
        assert seen["method"] == "POST"
        assert seen["url"] == BASE_URL
        assert seen["auth"] == "Bearer sk-test"
        assert b'name="model"' in seen["body"]
        assert b"whisper-1" in seen["body"]
        assert b'name="language"' in seen["body"]
        assert b'name="file"' in seen["body"]
        assert clip.path.name.encode() in seen["body"]

    def test_transcribe_when_http_error_then_raises_transcription_error(self, clip):
        client = _whisper(lambda request: httpx.Response(500, text="overloaded"))
        with pytest.raises(TranscriptionError, match="HTTP 500"):
            _run(client, clip)

    def test_transcribe_when_network_error_then_raises_transcription_error(self, clip):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(TranscriptionError):
            _run(_whisper(handler), clip)

    def test_transcribe_when_unexpected_body_then_raises_transcription_error(self, clip):
        client = _whisper(lambda request: httpx.Response(200, content=json.dumps({"result": "four"})))
        with pytest.raises(TranscriptionError, match="Unexpected"):
            _run(client, clip)

    def test_transcribe_when_not_json_then_raises_transcription_error(self, clip):
        client = _whisper(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(TranscriptionError):
            _run(client, clip)

    def test_init_when_no_api_key_then_raises(self, monkeypatch):
        monkeypatch.setattr(settings, "openai_api_key", None)
        with pytest.raises(ValueError, match="OPENAI_API_KEY"):
            WhisperClient()


class _FakeSpeech:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def recognize(self, *, config, audio):
        self.calls.append((config, audio))
        if self.error is not None:
            raise self.error
        return self.response


def _result(*texts):
    return SimpleNamespace(alternatives=[SimpleNamespace(transcript=t) for t in texts])


class TestGoogleSpeechClient:

    def test_transcribe_when_results_then_joins_top_alternatives(self, clip):
        fake = _FakeSpeech(SimpleNamespace(results=[_result(" twenty ", "plenty"), _result(), _result("one")]))
        transcript = _run(GoogleSpeechClient(client=fake), clip)
        assert transcript.text == "twenty one"
        config, _ = fake.calls[0]
        assert config.language_code == "en-US"

    def test_transcribe_when_region_tag_given_then_passed_through(self, clip):
        fake = _FakeSpeech(SimpleNamespace(results=[]))
        transcript = _run(GoogleSpeechClient(client=fake), clip, language="en-GB")
        assert transcript.text == ""
        assert fake.calls[0][0].language_code == "en-GB"

    def test_transcribe_when_api_error_then_raises_transcription_error(self, clip):
        fake = _FakeSpeech(error=GoogleAPIError("quota exceeded"))
        with pytest.raises(TranscriptionError, match="quota"):
            _run(GoogleSpeechClient(client=fake), clip)


class TestCreateGateway:

    def test_create_when_openai_then_whisper_client(self, monkeypatch):
        monkeypatch.setattr(settings, "transcription_provider", "openai")
        monkeypatch.setattr(settings, "openai_api_key", "sk-test")
        gateway = create_gateway()
        assert isinstance(gateway, WhisperClient)
        asyncio.run(gateway.aclose())

    def test_create_when_unknown_provider_then_raises(self, monkeypatch):
        monkeypatch.setattr(settings, "transcription_provider", "carrier-pigeon")
        with pytest.raises(ValueError, match="carrier-pigeon"):
            create_gateway()
