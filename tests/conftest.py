"""Shared test fixtures and fakes."""

import asyncio
import shutil
from pathlib import Path
from typing import Any, Optional

import pytest

from card_agent.conversation.state_machine import SessionStateMachine
from card_agent.errors import UpstreamServiceError
from card_agent.pipeline import ResolutionPipeline, SessionStore
from card_agent.schemas.speech_schema import VoiceChainAudio
from card_agent.tools.actions import AccountActions
from card_agent.tools.customer import CustomerStore

DATA_FILE = Path(__file__).resolve().parent.parent / "data" / "customers.json"


class FakeSpeech:
    """Stands in for SpeechClient; records every call."""

    def __init__(
        self,
        response: Optional[dict[str, Any]] = None,
        error: Optional[Exception] = None,
        chain_url: str = "",
    ) -> None:
        self.response = response if response is not None else {"text": ""}
        self.error = error
        self.chain_url = chain_url
        self.transcribe_calls: list[tuple[bytes, str]] = []
        self.chain_calls: list[tuple[bytes, str, str]] = []

    @property
    def chain_configured(self) -> bool:
        return bool(self.chain_url)

    async def transcribe_audio(self, audio: bytes, mime_type: str = "audio/wav") -> dict[str, Any]:
        self.transcribe_calls.append((audio, mime_type))
        if self.error is not None:
            raise self.error
        return self.response

    async def process_voice_chain(
        self, audio: bytes, mime_type: str, session_id: str, enable_conversation_history: bool = True
    ) -> VoiceChainAudio:
        self.chain_calls.append((audio, mime_type, session_id))
        return VoiceChainAudio(session_id=session_id, mime_type="audio/wav", audio=b"RIFFreply")


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class CountingActions(AccountActions):
    """AccountActions that counts resolution calls and yields to the loop mid-call."""

    def __init__(self, store: CustomerStore, **kwargs: Any) -> None:
        super().__init__(store, **kwargs)
        self.calls: list[str] = []

    async def request_fee_waiver(self, *args: Any, **kwargs: Any):
        self.calls.append("fee_waiver")
        await asyncio.sleep(0)
        return await super().request_fee_waiver(*args, **kwargs)

    async def report_fraud_alert(self, *args: Any, **kwargs: Any):
        self.calls.append("fraud_alert")
        await asyncio.sleep(0)
        return await super().report_fraud_alert(*args, **kwargs)

    async def open_billing_dispute(self, *args: Any, **kwargs: Any):
        self.calls.append("billing_dispute")
        await asyncio.sleep(0)
        return await super().open_billing_dispute(*args, **kwargs)


@pytest.fixture
def customer_file(tmp_path) -> Path:
    target = tmp_path / "customers.json"
    shutil.copy(DATA_FILE, target)
    return target


@pytest.fixture
def customer_store(customer_file) -> CustomerStore:
    return CustomerStore.from_file(customer_file)


@pytest.fixture
def actions(customer_store) -> CountingActions:
    return CountingActions(customer_store)


@pytest.fixture
def speech() -> FakeSpeech:
    return FakeSpeech(response={"text": "I was charged $45 at Acme Corp"})


@pytest.fixture
def session_store() -> SessionStore:
    return SessionStore()


@pytest.fixture
def pipeline(customer_store, actions, speech, session_store) -> ResolutionPipeline:
    return ResolutionPipeline(customer_store, actions, speech, store=session_store)


@pytest.fixture
def state_machine() -> SessionStateMachine:
    return SessionStateMachine()


@pytest.fixture
def stt_down() -> UpstreamServiceError:
    return UpstreamServiceError("Speech-to-text failed (503): unavailable")
