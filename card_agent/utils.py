"""Shared utilities used across the card resolution agent."""

import uuid


def short_id(prefix: str) -> str:
    """Build a short prefixed identifier.

    Examples:
        >>> short_id("fraud").startswith("fraud_")
        True
        >>> len(short_id("disp"))
        13
    """
    return f"{prefix}_{uuid.uuid4().hex[:8]}"


def format_amount(amount: float) -> str:
    """Render a currency amount without a trailing ``.0`` for whole values.

    Examples:
        >>> format_amount(95.0)
        '95'
        >>> format_amount(89.9)
        '89.90'
    """
    if float(amount).is_integer():
        return str(int(amount))
    return f"{amount:.2f}"


def excerpt(text: str, limit: int = 200) -> str:
    """Collapse whitespace and cut ``text`` to at most ``limit`` characters."""
    collapsed = " ".join(text.split())
    if len(collapsed) <= limit:
        return collapsed
    return collapsed[: limit - 3].rstrip() + "..."
