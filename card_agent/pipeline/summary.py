"""Final case summary rendering."""

from typing import Optional

from card_agent.errors import InvalidStateError
from card_agent.schemas.customer_schema import Customer
from card_agent.schemas.resolution_schema import (
    DisputeResult,
    FeeWaiverResult,
    FraudAlertResult,
)
from card_agent.schemas.session_schema import IssueType, Resolution, Session, SummaryResult
from card_agent.utils import format_amount


class SummaryBuilder:
    """Renders a deterministic summary from a handled session."""

    def resolution_text(
        self, issue_type: IssueType, resolution: Resolution, session_id: Optional[str] = None
    ) -> str:
        if issue_type == IssueType.FEE_WAIVER and isinstance(resolution, FeeWaiverResult):
            if resolution.approved:
                return f"Fee waiver approved for ${format_amount(resolution.waiver_amount)}."
            return "Fee waiver request was not approved."
        if issue_type == IssueType.FRAUD_ALERT and isinstance(resolution, FraudAlertResult):
            return f"Fraud alert filed with case {resolution.case_id}. Card lock is active."
        if isinstance(resolution, DisputeResult):
            return (
                f"Dispute {resolution.dispute_id} was submitted. "
                f"Expected review window is {resolution.expected_resolution_window_days} days."
            )
        raise InvalidStateError(
            f"Resolution {type(resolution).__name__} does not match issue type {issue_type.value}",
            context={"session_id": session_id, "issue_type": issue_type.value},
        )

    def build(self, session: Session, customer: Customer, resolution: Resolution) -> SummaryResult:
        text = (
            f"{customer.full_name} reported {session.issue_type.label}. "
            f"{self.resolution_text(session.issue_type, resolution, session.session_id)}"
        )
        return SummaryResult(
            session_id=session.session_id,
            customer_id=customer.id,
            customer_name=customer.full_name,
            card_last4=session.card_last4,
            detected_issue_type=session.issue_type,
            transcript=session.transcript,
            resolution=resolution,
            status=session.status,
            summary=text,
        )
