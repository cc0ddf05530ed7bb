"""
Routes a classified session to its account action.

The dispatcher only builds the action's arguments from the session and
returns what the action returns; approval and denial rules belong to
AccountActions.
"""

import asyncio
from datetime import date
from typing import Awaitable, Callable, Optional

from card_agent.config import ResolutionConfig, settings
from card_agent.conversation.entities import extract_amount, extract_merchant, infer_fee_type
from card_agent.errors import ResolutionError, UpstreamServiceError
from card_agent.logging_context import get_session_logger
from card_agent.schemas.session_schema import IssueType, Resolution, Session
from card_agent.tools.actions import AccountActions
from card_agent.utils import excerpt

logger = get_session_logger(__name__)

FEE_WAIVER_REASON = "Requested by voice agent after customer intake"


class ActionDispatcher:
    """Dispatch table keyed by issue type."""

    def __init__(
        self,
        actions: AccountActions,
        config: Optional[ResolutionConfig] = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._actions = actions
        self._config = config or settings.resolution
        self._today = today
        self._handlers: dict[IssueType, Callable[[Session], Awaitable[Resolution]]] = {
            IssueType.FEE_WAIVER: self._fee_waiver,
            IssueType.FRAUD_ALERT: self._fraud_alert,
            IssueType.BILLING_DISPUTE: self._billing_dispute,
        }

    async def dispatch(self, session: Session) -> Resolution:
        """
        Invoke the action for the session's issue type.

        Raises:
            UpstreamServiceError: The action timed out or failed unexpectedly.
            NotFoundError: The customer or card no longer exists.
        """
        handler = self._handlers.get(session.issue_type, self._billing_dispute)
        timeout = self._config.action_timeout_sec
        try:
            return await asyncio.wait_for(handler(session), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise UpstreamServiceError(
                f"Account action timed out after {timeout}s",
                context={"session_id": session.session_id, "issue_type": session.issue_type.value},
            ) from e
        except ResolutionError:
            raise
        except Exception as e:
            raise UpstreamServiceError(
                f"Account action failed: {e}",
                context={"session_id": session.session_id, "issue_type": session.issue_type.value},
            ) from e

    async def _fee_waiver(self, session: Session) -> Resolution:
        fee_type = infer_fee_type(session.transcript)
        logger.info("Requesting %s fee waiver", fee_type)
        return await self._actions.request_fee_waiver(
            customer_id=session.customer_id,
            card_last4=session.card_last4,
            fee_type=fee_type,
            reason=FEE_WAIVER_REASON,
            idempotency_key=session.dispatch_token,
        )

    async def _fraud_alert(self, session: Session) -> Resolution:
        logger.info("Reporting fraud alert")
        return await self._actions.report_fraud_alert(
            customer_id=session.customer_id,
            card_last4=session.card_last4,
            suspicious_transaction=session.transcript,
            idempotency_key=session.dispatch_token,
        )

    async def _billing_dispute(self, session: Session) -> Resolution:
        merchant = extract_merchant(session.transcript)
        amount = extract_amount(session.transcript) or self._config.default_dispute_amount
        logger.info("Opening billing dispute: %s for %.2f", merchant, amount)
        return await self._actions.open_billing_dispute(
            customer_id=session.customer_id,
            card_last4=session.card_last4,
            merchant=merchant,
            amount=amount,
            transaction_date=self._today().isoformat(),
            reason=f"Captured from voice intake: {excerpt(session.transcript)}",
            idempotency_key=session.dispatch_token,
        )
