"""
Voice-intake resolution pipeline.

Three operations, each invoked independently by the HTTP layer:

    begin(customer_id, ...)  -> IntakeResult    transcript + classification, new session
    handle(session_id)       -> HandleResult    dispatch the account action
    summarize(session_id)    -> SummaryResult   render the case summary

handle and summarize hold the session's lock across the status check,
the external call, and the state update, so concurrent calls on one
session cannot both pass the precondition. The session only advances
after the action returns; a failed handle leaves it at
``intake_complete`` and a retry reuses the same dispatch token.
"""

from typing import Optional, Sequence

from card_agent.config import AppConfig, settings
from card_agent.conversation.classifier import ISSUE_RULES, IssueRule, classify_issue
from card_agent.conversation.state_machine import SessionStatus
from card_agent.errors import InvalidStateError, NotFoundError
from card_agent.logging_context import get_session_logger, set_session_id
from card_agent.pipeline.dispatcher import ActionDispatcher
from card_agent.pipeline.session_store import SessionStore
from card_agent.pipeline.summary import SummaryBuilder
from card_agent.pipeline.transcript import TranscriptAcquirer
from card_agent.schemas.customer_schema import Customer
from card_agent.schemas.session_schema import (
    HandleResult,
    IntakeResult,
    Session,
    SummaryResult,
)
from card_agent.schemas.speech_schema import TranscriptSource
from card_agent.tools.actions import AccountActions
from card_agent.tools.customer import CustomerStore
from card_agent.tools.speech import SpeechClient
from card_agent.utils import short_id

logger = get_session_logger(__name__)


def _require_status(session: Session, expected: SessionStatus, operation: str) -> None:
    if session.status != expected:
        raise InvalidStateError(
            f"Cannot {operation}: session is '{session.status.value}', "
            f"expected '{expected.value}'",
            context={"session_id": session.session_id},
        )


class ResolutionPipeline:
    """Orchestrates intake, handling, and summary for card complaints."""

    def __init__(
        self,
        customers: CustomerStore,
        actions: AccountActions,
        speech: SpeechClient,
        store: Optional[SessionStore] = None,
        config: Optional[AppConfig] = None,
        rules: Sequence[IssueRule] = ISSUE_RULES,
    ) -> None:
        self._config = config or settings
        self._customers = customers
        self._store = store if store is not None else SessionStore(self._config.sessions)
        self._rules = rules
        self._acquirer = TranscriptAcquirer(speech, self._config.resolution)
        self._dispatcher = ActionDispatcher(actions, self._config.resolution)
        self._summaries = SummaryBuilder()

    @property
    def store(self) -> SessionStore:
        return self._store

    def _require_customer(self, customer_id: str) -> Customer:
        customer = self._customers.get_customer(customer_id)
        if customer is None:
            raise NotFoundError("Customer not found", context={"customer_id": customer_id})
        return customer

    @staticmethod
    def _pick_card(customer: Customer, card_last4: Optional[str]) -> str:
        if card_last4:
            if customer.find_card(card_last4) is None:
                raise NotFoundError(
                    f"No card found ending in {card_last4}",
                    context={"customer_id": customer.id, "card_last4": card_last4},
                )
            return card_last4
        if not customer.cards:
            raise NotFoundError(
                "No card available for this customer", context={"customer_id": customer.id}
            )
        return customer.cards[0].last4

    async def begin(
        self,
        customer_id: str,
        card_last4: Optional[str] = None,
        transcript: Optional[str] = None,
        audio: Optional[bytes] = None,
        mime_type: Optional[str] = None,
    ) -> IntakeResult:
        """Resolve the transcript, classify it, and open a session."""
        session_id = short_id("sess")
        set_session_id(session_id)
        logger.info(
            "Voice intake for customer %s (transcript=%s, audio=%s)",
            customer_id, bool(transcript), f"{len(audio)} bytes" if audio else "none",
        )

        customer = self._require_customer(customer_id)
        selected_card = self._pick_card(customer, card_last4)

        result = await self._acquirer.acquire(
            transcript=transcript,
            audio=audio,
            mime_type=mime_type,
            chain_session_id=session_id,
        )
        issue_type = classify_issue(result.text, self._rules)

        session = Session(
            session_id=session_id,
            customer_id=customer.id,
            card_last4=selected_card,
            transcript=result.text,
            issue_type=issue_type,
            transcript_source=result.source,
        )
        self._store.add(session)
        logger.info("Session opened: issue=%s source=%s", issue_type.value, result.source.value)

        return IntakeResult(
            session_id=session_id,
            customer_id=customer.id,
            card_last4=selected_card,
            issue_type=issue_type,
            transcript=result.text,
            transcript_source=result.source,
            stt_used=result.source != TranscriptSource.PROVIDED,
            stt_response=result.raw_response,
            chain_audio=result.chain_audio,
        )

    async def handle(self, session_id: str) -> HandleResult:
        """Dispatch the account action for an intake-complete session."""
        set_session_id(session_id)
        async with self._store.locked(session_id) as session:
            _require_status(session, SessionStatus.INTAKE_COMPLETE, "handle call")
            self._require_customer(session.customer_id)

            resolution = await self._dispatcher.dispatch(session)
            session.record_resolution(resolution)
            logger.info("Call handled: %s", session.issue_type.value)

            return HandleResult(
                session_id=session.session_id,
                status=session.status,
                issue_type=session.issue_type,
                resolution=resolution,
            )

    async def summarize(self, session_id: str) -> SummaryResult:
        """Render the final summary for a handled session."""
        set_session_id(session_id)
        async with self._store.locked(session_id) as session:
            _require_status(session, SessionStatus.CALL_HANDLED, "summarize")
            customer = self._require_customer(session.customer_id)

            summary = self._summaries.build(session, customer, session.resolution)
            session.mark_summarized()
            logger.info("Summary ready")

            return summary.model_copy(update={"status": session.status})
