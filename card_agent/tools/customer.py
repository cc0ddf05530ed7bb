"""
Customer record store.

Backed by a JSON file of the form ``{"customers": [...]}`` when a path
is given, or by an in-memory seed list otherwise. In production this
would be the card issuer's customer database.
"""

import json
import logging
from pathlib import Path
from typing import Iterable, Optional, Union

from card_agent.errors import NotFoundError
from card_agent.schemas.customer_schema import Card, Customer

logger = logging.getLogger(__name__)


class CustomerStore:
    """Look up and persist customer records by id."""

    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        customers: Optional[Iterable[Customer]] = None,
    ) -> None:
        self._path = Path(path) if path is not None else None
        self._customers: dict[str, Customer] = {}
        if self._path is not None:
            self._load()
        for customer in customers or []:
            self._customers[customer.id] = customer

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "CustomerStore":
        return cls(path=path)

    def _load(self) -> None:
        raw = json.loads(self._path.read_text(encoding="utf-8"))
        for record in raw.get("customers", []):
            customer = Customer.model_validate(record)
            self._customers[customer.id] = customer
        logger.debug("Loaded %d customer(s) from %s", len(self._customers), self._path)

    def _write(self) -> None:
        payload = {
            "customers": [c.model_dump(by_alias=True) for c in self._customers.values()]
        }
        self._path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def get_customer(self, customer_id: str) -> Optional[Customer]:
        """Return a copy of the customer record, or None if unknown."""
        customer = self._customers.get(customer_id)
        if customer is None:
            return None
        return customer.model_copy(deep=True)

    def save_customer(self, customer: Customer) -> None:
        """Replace an existing customer record."""
        if customer.id not in self._customers:
            raise NotFoundError(
                f"Customer not found: {customer.id}", context={"customer_id": customer.id}
            )
        self._customers[customer.id] = customer.model_copy(deep=True)
        if self._path is not None:
            self._write()
        logger.debug("Customer saved: %s", customer.id)

    def list_cards(self, customer_id: str) -> list[Card]:
        customer = self.get_customer(customer_id)
        if customer is None:
            return []
        return customer.cards
