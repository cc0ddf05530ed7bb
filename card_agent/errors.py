"""
Exception taxonomy for the card resolution pipeline.

Every failure surfaces to the caller of begin/handle/summarize as one
of these types; the HTTP layer in front of the pipeline maps them to
client-visible responses.
"""

from typing import Any, Optional


class ResolutionError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            return f"{self.message} | context={self.context}"
        return self.message


class NotFoundError(ResolutionError):
    """Unknown customer, card, transaction, or session."""


class InvalidStateError(ResolutionError):
    """Operation invoked out of session-state order, or lost a race for the session."""


class EmptyInputError(ResolutionError):
    """No transcript could be derived from any input source."""


class UpstreamServiceError(ResolutionError):
    """Speech or account-action service failed or timed out."""
