"""Tests for the speech service client using httpx.MockTransport."""

import base64
import json

import httpx
import pytest

from card_agent.config import SpeechConfig
from card_agent.errors import UpstreamServiceError
from card_agent.tools.speech import SpeechClient


def _config(**overrides) -> SpeechConfig:
    values = {
        "base_url": "https://speech.test/v1",
        "api_key": "test-key",
        "chain_url": "https://chain.test/run",
        "timeout_sec": 5.0,
    }
    values.update(overrides)
    return SpeechConfig(**values)


class TestTranscribeAudio:
    @pytest.mark.asyncio
    async def test_posts_base64_audio(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"text": "this is fraud"})

        async with SpeechClient(_config(), transport=httpx.MockTransport(handler)) as client:
            raw = await client.transcribe_audio(b"RIFFdata", "audio/wav")

        assert raw == {"text": "this is fraud"}
        request = seen[0]
        assert str(request.url) == "https://speech.test/v1/speech-to-text"
        assert request.headers["Authorization"] == "Bearer test-key"
        body = json.loads(request.content)
        assert body["audio"]["mimeType"] == "audio/wav"
        assert base64.b64decode(body["audio"]["content"]) == b"RIFFdata"

    @pytest.mark.asyncio
    async def test_error_status_raises_upstream(self):
        transport = httpx.MockTransport(lambda r: httpx.Response(503, text="unavailable"))
        async with SpeechClient(_config(), transport=transport) as client:
            with pytest.raises(UpstreamServiceError, match="503"):
                await client.transcribe_audio(b"RIFF")

    @pytest.mark.asyncio
    async def test_timeout_raises_upstream(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        async with SpeechClient(_config(), transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(UpstreamServiceError, match="timed out"):
                await client.transcribe_audio(b"RIFF")

    @pytest.mark.asyncio
    async def test_connection_error_raises_upstream(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with SpeechClient(_config(), transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(UpstreamServiceError, match="request failed"):
                await client.transcribe_audio(b"RIFF")

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        transport = httpx.MockTransport(lambda r: httpx.Response(200, json={}))
        async with SpeechClient(_config(api_key=""), transport=transport) as client:
            with pytest.raises(UpstreamServiceError, match="SPEECH_API_KEY"):
                await client.transcribe_audio(b"RIFF")

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        transport = httpx.MockTransport(lambda r: httpx.Response(200, text="not json"))
        async with SpeechClient(_config(), transport=transport) as client:
            with pytest.raises(UpstreamServiceError, match="non-JSON"):
                await client.transcribe_audio(b"RIFF")


class TestVoiceChain:
    @pytest.mark.asyncio
    async def test_returns_audio_reply(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=b"ID3reply", headers={"content-type": "audio/mpeg"})

        async with SpeechClient(_config(), transport=httpx.MockTransport(handler)) as client:
            reply = await client.process_voice_chain(b"RIFF", "audio/wav", "sess_1")

        assert reply.audio == b"ID3reply"
        assert reply.mime_type == "audio/mpeg"
        assert reply.session_id == "sess_1"
        assert str(seen[0].url) == "https://chain.test/run"
        assert b'"sessionId": "sess_1"' in seen[0].content

    @pytest.mark.asyncio
    async def test_not_configured(self):
        transport = httpx.MockTransport(lambda r: httpx.Response(200))
        async with SpeechClient(_config(chain_url=""), transport=transport) as client:
            assert not client.chain_configured
            with pytest.raises(UpstreamServiceError, match="SPEECH_CHAIN_URL"):
                await client.process_voice_chain(b"RIFF", "audio/wav", "sess_1")

    @pytest.mark.asyncio
    async def test_chain_failure(self):
        transport = httpx.MockTransport(lambda r: httpx.Response(500, text="boom"))
        async with SpeechClient(_config(), transport=transport) as client:
            with pytest.raises(UpstreamServiceError, match="Voice chain failed"):
                await client.process_voice_chain(b"RIFF", "audio/wav", "sess_1")


class TestSynthesizeSpeech:
    @pytest.mark.asyncio
    async def test_uses_default_voice(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"audio": "UklGRg=="})

        async with SpeechClient(_config(), transport=httpx.MockTransport(handler)) as client:
            result = await client.synthesize_speech("Your fee was waived.")

        assert result == {"audio": "UklGRg=="}
        body = json.loads(seen[0].content)
        assert body["input"] == "Your fee was waived."
        assert body["voice"] == "alloy"
