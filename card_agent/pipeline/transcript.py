"""
Transcript acquisition: literal text, speech-to-text, or the voice-chain
fallback.

``normalize_stt_response`` is the only place that knows the raw shapes
the speech-to-text service can return; everything downstream works
with a TranscriptResult.
"""

from typing import Any, Awaitable, Optional, TypeVar

from card_agent.config import ResolutionConfig, settings
from card_agent.errors import EmptyInputError, ResolutionError, UpstreamServiceError
from card_agent.logging_context import get_session_logger
from card_agent.schemas.speech_schema import TranscriptResult, TranscriptSource
from card_agent.tools.speech import SpeechClient

logger = get_session_logger(__name__)

T = TypeVar("T")

# The voice chain answers with synthesized audio, so no real transcription
# is available on that path.
CHAIN_PLACEHOLDER_TRANSCRIPT = (
    "Voice issue captured via voice chain. "
    "Customer reported unauthorized or incorrect card charge."
)


def normalize_stt_response(raw: Any) -> TranscriptResult:
    """Fold every known speech-to-text response shape into one result.

    Tried in order: ``text``, ``transcript``, ``results[0].transcript``.
    Anything else yields an empty transcript.
    """
    text = ""
    if isinstance(raw, dict):
        if isinstance(raw.get("text"), str):
            text = raw["text"]
        elif isinstance(raw.get("transcript"), str):
            text = raw["transcript"]
        else:
            results = raw.get("results")
            if isinstance(results, list) and results and isinstance(results[0], dict):
                first = results[0].get("transcript")
                if isinstance(first, str):
                    text = first
    return TranscriptResult(
        source=TranscriptSource.SPEECH_TO_TEXT,
        text=text,
        raw_response=raw if isinstance(raw, dict) else None,
    )


class TranscriptAcquirer:
    """Resolves the complaint text for a new session."""

    def __init__(self, speech: SpeechClient, config: Optional[ResolutionConfig] = None) -> None:
        self._speech = speech
        self._config = config or settings.resolution

    @staticmethod
    async def _guarded(operation: str, call: Awaitable[T]) -> T:
        try:
            return await call
        except ResolutionError:
            raise
        except Exception as e:
            raise UpstreamServiceError(f"{operation} failed: {e}") from e

    async def acquire(
        self,
        transcript: Optional[str] = None,
        audio: Optional[bytes] = None,
        mime_type: Optional[str] = None,
        chain_session_id: str = "",
    ) -> TranscriptResult:
        """
        Return the transcript for an intake.

        Raises:
            EmptyInputError: Neither text nor audio, or nothing recognizable in the audio.
            UpstreamServiceError: Speech-to-text failed and no voice chain is configured,
                or the voice chain itself failed.
        """
        if transcript and transcript.strip():
            logger.info("Using provided text transcript, skipping speech-to-text")
            return TranscriptResult(source=TranscriptSource.PROVIDED, text=transcript)

        if not audio:
            raise EmptyInputError("Provide either a transcript or audio for voice intake")

        mime = mime_type or self._config.default_mime_type
        try:
            raw = await self._guarded("Speech-to-text", self._speech.transcribe_audio(audio, mime))
            result = normalize_stt_response(raw)
        except UpstreamServiceError as e:
            if not self._speech.chain_configured:
                logger.error("Speech-to-text failed and no voice chain is configured: %s", e)
                raise
            logger.warning("Speech-to-text failed, falling back to voice chain: %s", e)
            chain_audio = await self._guarded(
                "Voice chain",
                self._speech.process_voice_chain(audio, mime, chain_session_id),
            )
            result = TranscriptResult(
                source=TranscriptSource.VOICE_CHAIN,
                text=CHAIN_PLACEHOLDER_TRANSCRIPT,
                chain_audio=chain_audio,
            )

        if result.is_empty:
            raise EmptyInputError(
                "Could not derive transcript from voice input",
                context={"source": result.source.value},
            )
        return result
