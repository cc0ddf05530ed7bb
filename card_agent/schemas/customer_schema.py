"""Customer, card, transaction, and dispute records.

Records are stored as camelCase JSON; the models accept either the
camelCase alias or the snake_case field name.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Record(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Card(_Record):
    """A credit card held by a customer."""
    last4: str
    issuer: str
    nickname: str = ""
    status: str = "active"
    fraud_locked: bool = False
    late_fees_ytd: float = 0.0
    annual_fee: float = 0.0
    full_number: Optional[str] = None
    card_id: Optional[str] = None


class Transaction(_Record):
    """A posted card transaction."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    transaction_id: str
    card_last4: str
    merchant: str = ""
    amount: float = 0.0
    date: Optional[str] = None
    flagged: bool = False
    flag_reason: Optional[str] = None
    flagged_at: Optional[str] = None


class Dispute(_Record):
    """A billing dispute opened against one of the customer's cards."""
    dispute_id: str
    card_last4: str
    merchant: str
    amount: float
    transaction_date: str
    reason: str
    status: str = "submitted"
    card_id: Optional[str] = None
    created_at: Optional[str] = None


class Customer(_Record):
    """Customer record from the card-holder database."""
    id: str
    full_name: str
    last4_ssn: str = ""
    phone: str = ""
    cards: list[Card] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)
    open_disputes: list[Dispute] = Field(default_factory=list)

    def find_card(self, last4: str) -> Optional[Card]:
        """Return the card ending in ``last4``, or None."""
        for card in self.cards:
            if card.last4 == last4:
                return card
        return None
