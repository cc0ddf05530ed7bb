"""
Account actions against customer card records.

In production these calls would go to the card issuer's servicing
APIs. Here they mutate the CustomerStore directly, with the same
approval rules the servicing desk applies.

Mutating actions accept an ``idempotency_key``: a repeated key returns
the first result without repeating the side effect. Completed results
are kept under the same TTL and count limits as sessions.
"""

import logging
import time
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Callable, Optional

from pydantic import BaseModel

from card_agent.config import ResolutionConfig, SessionConfig, settings
from card_agent.errors import NotFoundError
from card_agent.schemas.customer_schema import Card, Customer, Dispute
from card_agent.schemas.resolution_schema import (
    DisputeResult,
    EscalationResult,
    FeeWaiverResult,
    FraudAlertResult,
    TransactionFlagResult,
    VerificationResult,
)
from card_agent.tools.customer import CustomerStore
from card_agent.utils import short_id

logger = logging.getLogger(__name__)

ESCALATION_QUEUE = "credit_card_advocacy"
ESCALATION_ETA_MINUTES = 15


class AccountActions:
    """Fee waivers, fraud alerts, disputes, and the supporting lookups."""

    def __init__(
        self,
        store: CustomerStore,
        config: Optional[ResolutionConfig] = None,
        retention: Optional[SessionConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._config = config or settings.resolution
        self._retention = retention or settings.sessions
        self._clock = clock
        self._completed: "OrderedDict[str, tuple[float, BaseModel]]" = OrderedDict()

    @property
    def replay_cache_size(self) -> int:
        return len(self._completed)

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _require_customer(self, customer_id: str) -> Customer:
        customer = self._store.get_customer(customer_id)
        if customer is None:
            raise NotFoundError("Customer not found", context={"customer_id": customer_id})
        return customer

    @staticmethod
    def _require_card(customer: Customer, card_last4: str) -> Card:
        card = customer.find_card(card_last4)
        if card is None:
            raise NotFoundError(
                f"No card found ending in {card_last4}",
                context={"customer_id": customer.id, "card_last4": card_last4},
            )
        return card

    def _prune_completed(self) -> None:
        cutoff = self._clock() - self._retention.ttl_sec
        while self._completed:
            key, (stored_at, _) = next(iter(self._completed.items()))
            if stored_at >= cutoff and len(self._completed) <= self._retention.max_sessions:
                break
            del self._completed[key]

    def _replay(self, idempotency_key: Optional[str]) -> Optional[BaseModel]:
        if not idempotency_key:
            return None
        self._prune_completed()
        entry = self._completed.get(idempotency_key)
        if entry is None:
            return None
        logger.info("Replaying completed action for key %s", idempotency_key)
        return entry[1]

    def _remember(self, idempotency_key: Optional[str], result: BaseModel) -> None:
        if idempotency_key:
            self._completed[idempotency_key] = (self._clock(), result)
            self._completed.move_to_end(idempotency_key)
            self._prune_completed()

    # ------------------------------------------------------------------ #
    # Resolution actions
    # ------------------------------------------------------------------ #

    async def request_fee_waiver(
        self,
        customer_id: str,
        card_last4: str,
        fee_type: str,
        reason: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> FeeWaiverResult:
        """Waive a late or annual fee if the card carries one."""
        replayed = self._replay(idempotency_key)
        if replayed is not None:
            return replayed

        customer = self._require_customer(customer_id)
        card = self._require_card(customer, card_last4)
        normalized = (fee_type or "annual").lower()

        approved = (normalized == "late" and card.late_fees_ytd > 0) or (
            normalized == "annual" and card.annual_fee > 0
        )
        balance = card.late_fees_ytd if normalized == "late" else card.annual_fee
        waiver_amount = 0.0
        if approved:
            waiver_amount = (
                min(balance, self._config.annual_fee_waiver_cap)
                if normalized == "annual"
                else balance
            )

        result = FeeWaiverResult(
            ticket_id=short_id("fee"),
            issuer=card.issuer,
            card_last4=card_last4,
            fee_type=normalized,
            approved=approved,
            waiver_amount=waiver_amount,
            reason_provided=reason or "No reason provided",
        )

        if approved and normalized == "late":
            card.late_fees_ytd = max(0.0, card.late_fees_ytd - waiver_amount)
            self._store.save_customer(customer)

        self._remember(idempotency_key, result)
        logger.info(
            "Fee waiver %s: %s fee on card %s (approved=%s)",
            result.ticket_id, normalized, card_last4, approved,
        )
        return result

    async def report_fraud_alert(
        self,
        customer_id: str,
        card_last4: str,
        suspicious_transaction: str,
        idempotency_key: Optional[str] = None,
    ) -> FraudAlertResult:
        """Lock the card and open a fraud case."""
        replayed = self._replay(idempotency_key)
        if replayed is not None:
            return replayed

        customer = self._require_customer(customer_id)
        card = self._require_card(customer, card_last4)
        card.fraud_locked = True
        self._store.save_customer(customer)

        result = FraudAlertResult(
            case_id=short_id("fraud"),
            issuer=card.issuer,
            card_last4=card_last4,
            temporary_lock_applied=True,
            suspicious_transaction=suspicious_transaction,
        )
        self._remember(idempotency_key, result)
        logger.info("Fraud case %s opened, card %s locked", result.case_id, card_last4)
        return result

    async def open_billing_dispute(
        self,
        customer_id: str,
        card_last4: str,
        merchant: str,
        amount: float,
        transaction_date: str,
        reason: str,
        idempotency_key: Optional[str] = None,
    ) -> DisputeResult:
        """Record a submitted dispute on the customer's file."""
        replayed = self._replay(idempotency_key)
        if replayed is not None:
            return replayed

        customer = self._require_customer(customer_id)
        card = self._require_card(customer, card_last4)
        dispute = Dispute(
            dispute_id=short_id("disp"),
            card_id=card.card_id,
            card_last4=card_last4,
            merchant=merchant,
            amount=amount,
            transaction_date=transaction_date,
            reason=reason,
            status="submitted",
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        customer.open_disputes.append(dispute)
        self._store.save_customer(customer)

        result = DisputeResult(
            dispute_id=dispute.dispute_id,
            issuer=card.issuer,
            expected_resolution_window_days=self._config.dispute_window_days,
            temporary_credit_likely=amount >= self._config.temporary_credit_threshold,
        )
        self._remember(idempotency_key, result)
        logger.info(
            "Dispute %s opened: %s for %.2f on card %s",
            dispute.dispute_id, merchant, amount, card_last4,
        )
        return result

    # ------------------------------------------------------------------ #
    # Supporting lookups and actions
    # ------------------------------------------------------------------ #

    async def verify_customer(self, customer_id: str, last4_ssn: str) -> VerificationResult:
        customer = self._store.get_customer(customer_id)
        if customer is None:
            return VerificationResult(verified=False, reason="customer_not_found")
        if customer.last4_ssn != last4_ssn:
            return VerificationResult(verified=False, reason="mismatch")
        return VerificationResult(
            verified=True,
            reason="ok",
            customer_id=customer.id,
            full_name=customer.full_name,
            phone=customer.phone,
        )

    async def list_customer_cards(self, customer_id: str) -> list[dict]:
        """Card overview without full numbers."""
        customer = self._require_customer(customer_id)
        return [
            {
                "issuer": card.issuer,
                "nickname": card.nickname,
                "cardLast4": card.last4,
                "status": card.status,
                "fraudLocked": card.fraud_locked,
            }
            for card in customer.cards
        ]

    async def list_customer_transactions(
        self, customer_id: str, card_last4: Optional[str] = None
    ) -> list[dict]:
        customer = self._require_customer(customer_id)
        return [
            t.model_dump(by_alias=True)
            for t in customer.transactions
            if card_last4 is None or t.card_last4 == card_last4
        ]

    async def flag_transaction(
        self,
        customer_id: str,
        transaction_id: str,
        reason: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> TransactionFlagResult:
        """Flag a posted transaction as suspicious and lock the card it was made on."""
        replayed = self._replay(idempotency_key)
        if replayed is not None:
            return replayed

        customer = self._require_customer(customer_id)
        tx = next((t for t in customer.transactions if t.transaction_id == transaction_id), None)
        if tx is None:
            raise NotFoundError(
                f"Transaction not found: {transaction_id}",
                context={"customer_id": customer_id, "transaction_id": transaction_id},
            )

        tx.flagged = True
        tx.flag_reason = reason or "customer_reported"
        tx.flagged_at = datetime.now(timezone.utc).isoformat()
        card = self._require_card(customer, tx.card_last4)
        card.fraud_locked = True
        self._store.save_customer(customer)

        result = TransactionFlagResult(
            case_id=short_id("fraud"),
            transaction_id=transaction_id,
            card_last4=tx.card_last4,
            issuer=card.issuer,
        )
        self._remember(idempotency_key, result)
        logger.info("Transaction %s flagged, case %s", transaction_id, result.case_id)
        return result

    async def escalate_to_human(self, topic: str, summary: str) -> EscalationResult:
        return EscalationResult(
            escalated=True,
            queue=ESCALATION_QUEUE,
            eta_minutes=ESCALATION_ETA_MINUTES,
            topic=topic,
            summary=summary,
        )
