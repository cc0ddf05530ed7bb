"""
Keyword classifier that assigns an issue type to a complaint transcript.

Rules are plain data, evaluated in order; the first rule with a keyword
contained in the lower-cased text wins. Text matching no rule is
treated as a billing dispute.
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from card_agent.schemas.session_schema import IssueType

logger = logging.getLogger(__name__)

DEFAULT_ISSUE_TYPE = IssueType.BILLING_DISPUTE


@dataclass(frozen=True)
class IssueRule:
    """One row of the classification table."""
    issue_type: IssueType
    keywords: tuple[str, ...]

    def matches(self, lowered_text: str) -> bool:
        return any(keyword in lowered_text for keyword in self.keywords)


ISSUE_RULES: tuple[IssueRule, ...] = (
    IssueRule(IssueType.FRAUD_ALERT, ("fraud", "unknown charge", "did not make")),
    IssueRule(IssueType.BILLING_DISPUTE, ("dispute", "refund", "charged", "merchant")),
    IssueRule(IssueType.FEE_WAIVER, ("annual fee", "late fee", "waive", "fee waiver")),
)


def load_rules(rows: Iterable[dict[str, Any]]) -> tuple[IssueRule, ...]:
    """Build an ordered rule table from ``{"issue_type": ..., "keywords": [...]}`` rows."""
    return tuple(
        IssueRule(
            issue_type=IssueType(row["issue_type"]),
            keywords=tuple(k.lower() for k in row["keywords"]),
        )
        for row in rows
    )


def classify_issue(text: str, rules: Sequence[IssueRule] = ISSUE_RULES) -> IssueType:
    """Return the issue type of the first matching rule, or the default."""
    lowered = text.lower()
    for rule in rules:
        if rule.matches(lowered):
            logger.debug("Classified as %s", rule.issue_type.value)
            return rule.issue_type
    return DEFAULT_ISSUE_TYPE
