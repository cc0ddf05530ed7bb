"""Canonical transcript and voice-chain payloads."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel


class TranscriptSource(str, Enum):
    """Where the session transcript came from."""
    PROVIDED = "provided"
    SPEECH_TO_TEXT = "speech_to_text"
    VOICE_CHAIN = "voice_chain"


class VoiceChainAudio(BaseModel):
    """Synthesized reply returned by the voice chain. Audio out, not text."""
    session_id: str
    mime_type: str
    audio: bytes


class TranscriptResult(BaseModel):
    """A transcript normalized from any acquisition path."""
    source: TranscriptSource
    text: str
    raw_response: Optional[dict[str, Any]] = None
    chain_audio: Optional[VoiceChainAudio] = None

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()
