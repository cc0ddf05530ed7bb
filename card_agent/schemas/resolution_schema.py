"""Results returned by the account actions.

The three resolution models (fee waiver, fraud alert, dispute) are
stored verbatim on the session once a call is handled.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _Result(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class FeeWaiverResult(_Result):
    """Outcome of a fee waiver request."""
    ticket_id: str
    issuer: str
    card_last4: str
    fee_type: str
    approved: bool
    waiver_amount: float = 0.0
    reason_provided: str = ""


class FraudAlertResult(_Result):
    """Outcome of a fraud report; the card is locked when filed."""
    case_id: str
    issuer: str
    card_last4: str
    temporary_lock_applied: bool
    suspicious_transaction: str = ""


class DisputeResult(_Result):
    """Outcome of opening a billing dispute."""
    dispute_id: str
    issuer: str
    expected_resolution_window_days: int
    temporary_credit_likely: bool = False


class TransactionFlagResult(_Result):
    case_id: str
    transaction_id: str
    card_last4: str
    issuer: str
    temporary_lock_applied: bool = True
    flagged: bool = True


class VerificationResult(_Result):
    verified: bool
    reason: str
    customer_id: Optional[str] = None
    full_name: Optional[str] = None
    phone: Optional[str] = None


class EscalationResult(_Result):
    escalated: bool
    queue: str
    eta_minutes: int
    topic: str
    summary: str
