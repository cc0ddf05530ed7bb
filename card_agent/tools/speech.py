"""
Remote speech service client: speech-to-text, text-to-speech, and the
voice-chain pipeline (speech in, synthesized speech out).

Every failure, including timeouts and a missing API key, is raised as
UpstreamServiceError. No retries are made here.
"""

import base64
import json
import logging
from typing import Any, Optional

import httpx

from card_agent.config import SpeechConfig, settings
from card_agent.errors import UpstreamServiceError
from card_agent.schemas.speech_schema import VoiceChainAudio

logger = logging.getLogger(__name__)


class SpeechClient:
    """Async client for the hosted speech APIs."""

    def __init__(
        self,
        config: Optional[SpeechConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config or settings.speech
        self._client = httpx.AsyncClient(timeout=self._config.timeout_sec, transport=transport)

    async def __aenter__(self) -> "SpeechClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    @property
    def chain_configured(self) -> bool:
        return bool(self._config.chain_url)

    def _require_api_key(self) -> str:
        if not self._config.api_key:
            raise UpstreamServiceError("Missing SPEECH_API_KEY")
        return self._config.api_key

    def _auth_headers(self) -> dict[str, str]:
        if not self._config.api_key:
            return {}
        return {"Authorization": f"Bearer {self._config.api_key}"}

    async def _post(self, operation: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.post(url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise UpstreamServiceError(
                f"{operation} failed ({e.response.status_code}): {e.response.text}",
                context={"url": url, "status_code": e.response.status_code},
            ) from e
        except httpx.TimeoutException as e:
            raise UpstreamServiceError(
                f"{operation} timed out after {self._config.timeout_sec}s",
                context={"url": url},
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamServiceError(
                f"{operation} request failed: {e}", context={"url": url}
            ) from e
        return response

    @staticmethod
    def _json_body(operation: str, response: httpx.Response) -> dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamServiceError(f"{operation} returned a non-JSON body") from e
        return payload if isinstance(payload, dict) else {}

    async def transcribe_audio(self, audio: bytes, mime_type: str = "audio/wav") -> dict[str, Any]:
        """Send audio for transcription. The response shape varies by model."""
        api_key = self._require_api_key()
        url = f"{self._config.base_url.rstrip('/')}/speech-to-text"
        response = await self._post(
            "Speech-to-text",
            url,
            headers={"Authorization": f"Bearer {api_key}"},
            json={
                "model": self._config.stt_model,
                "audio": {
                    "content": base64.b64encode(audio).decode("ascii"),
                    "mimeType": mime_type,
                },
            },
        )
        logger.debug("Speech-to-text returned %d bytes", len(response.content))
        return self._json_body("Speech-to-text", response)

    async def synthesize_speech(self, text: str, voice: Optional[str] = None) -> dict[str, Any]:
        api_key = self._require_api_key()
        url = f"{self._config.base_url.rstrip('/')}/text-to-speech"
        response = await self._post(
            "Text-to-speech",
            url,
            headers={"Authorization": f"Bearer {api_key}"},
            json={
                "model": self._config.tts_model,
                "input": text,
                "voice": voice or self._config.tts_voice,
            },
        )
        return self._json_body("Text-to-speech", response)

    async def process_voice_chain(
        self,
        audio: bytes,
        mime_type: str,
        session_id: str,
        enable_conversation_history: bool = True,
    ) -> VoiceChainAudio:
        """Run audio through the STT -> LLM -> TTS chain and return the spoken reply."""
        if not self.chain_configured:
            raise UpstreamServiceError("Missing SPEECH_CHAIN_URL")
        if not audio:
            raise UpstreamServiceError("Voice chain requires audio input")

        chain_config = {
            "enableConversationHistory": enable_conversation_history,
            "sessionId": session_id,
            "stt": {"model": self._config.chain_stt_model},
            "llm": {"model": self._config.chain_llm_model, "stream": True},
            "tts": {"model": self._config.chain_tts_model},
        }
        response = await self._post(
            "Voice chain",
            self._config.chain_url,
            headers=self._auth_headers(),
            files={"file": ("input.wav", audio, mime_type)},
            data={"config": json.dumps(chain_config)},
        )
        logger.info("Voice chain returned %d bytes of audio", len(response.content))
        return VoiceChainAudio(
            session_id=session_id,
            mime_type=response.headers.get("content-type", "audio/wav"),
            audio=response.content,
        )
