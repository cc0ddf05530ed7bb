"""Per-session state and the three pipeline response models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel

from card_agent.conversation.state_machine import (
    SessionStateMachine,
    SessionStatus,
    TransitionTrigger,
)
from card_agent.errors import InvalidStateError
from card_agent.schemas.resolution_schema import (
    DisputeResult,
    FeeWaiverResult,
    FraudAlertResult,
)
from card_agent.schemas.speech_schema import TranscriptSource, VoiceChainAudio

Resolution = Union[FeeWaiverResult, FraudAlertResult, DisputeResult]


class IssueType(str, Enum):
    FRAUD_ALERT = "fraud_alert"
    BILLING_DISPUTE = "billing_dispute"
    FEE_WAIVER = "fee_waiver"

    @property
    def label(self) -> str:
        """Human-readable form used in summaries, e.g. ``fraud alert``."""
        return self.value.replace("_", " ", 1)


@dataclass
class Session:
    """
    Transient record linking one customer interaction across intake,
    handling, and summary.

    The issue type is fixed at creation. The resolution is set exactly
    once, together with the move to ``call_handled``.
    """
    session_id: str
    customer_id: str
    card_last4: str
    transcript: str
    issue_type: IssueType
    transcript_source: TranscriptSource = TranscriptSource.PROVIDED
    dispatch_token: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    resolution: Optional[Resolution] = None
    state: SessionStateMachine = field(default_factory=SessionStateMachine)

    def __post_init__(self) -> None:
        if not self.transcript.strip():
            raise ValueError("Session transcript must not be empty")
        if not self.dispatch_token:
            self.dispatch_token = f"{self.session_id}:dispatch"

    @property
    def status(self) -> SessionStatus:
        return self.state.current_state

    def record_resolution(self, resolution: Resolution) -> None:
        """Store the dispatched action's result and advance to ``call_handled``."""
        if self.resolution is not None:
            raise InvalidStateError(
                "Resolution already recorded for this session",
                context={"session_id": self.session_id},
            )
        self.state.transition(TransitionTrigger.CALL_HANDLED)
        self.resolution = resolution

    def mark_summarized(self) -> None:
        self.state.transition(TransitionTrigger.SUMMARY_RENDERED)


class IntakeResult(BaseModel):
    """Returned by ``begin``."""
    session_id: str
    customer_id: str
    card_last4: str
    issue_type: IssueType
    transcript: str
    transcript_source: TranscriptSource
    stt_used: bool
    stt_response: Optional[dict[str, Any]] = None
    chain_audio: Optional[VoiceChainAudio] = None


class HandleResult(BaseModel):
    """Returned by ``handle``."""
    session_id: str
    status: SessionStatus
    issue_type: IssueType
    resolution: Resolution


class SummaryResult(BaseModel):
    """Returned by ``summarize``: the final case summary."""
    session_id: str
    customer_id: str
    customer_name: str
    card_last4: str
    detected_issue_type: IssueType
    transcript: str
    resolution: Resolution
    status: SessionStatus
    summary: str
