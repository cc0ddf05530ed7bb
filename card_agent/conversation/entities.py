"""Entity extraction from free-text complaints: amount, merchant, fee type."""

import re
from typing import Optional

UNKNOWN_MERCHANT = "Unknown merchant"

_AMOUNT_PATTERN = re.compile(r"\$?\s?(\d+(?:\.\d{1,2})?)")
_MERCHANT_PATTERN = re.compile(r"\b(?:at|from)\s+([A-Za-z0-9 .&-]{2,40})", re.IGNORECASE)


def extract_amount(text: str) -> Optional[float]:
    """Return the first dollar-like number in ``text``, or None.

    Examples:
        >>> extract_amount("I was charged $45 at Acme Corp")
        45.0
        >>> extract_amount("no amount here") is None
        True
    """
    match = _AMOUNT_PATTERN.search(text)
    if not match:
        return None
    return float(match.group(1))


def extract_merchant(text: str) -> str:
    """Return the words following "at" or "from", or ``UNKNOWN_MERCHANT``."""
    match = _MERCHANT_PATTERN.search(text)
    if not match:
        return UNKNOWN_MERCHANT
    merchant = match.group(1).strip()
    return merchant or UNKNOWN_MERCHANT


def infer_fee_type(text: str) -> str:
    """``late`` when the transcript mentions it, otherwise ``annual``."""
    return "late" if "late" in text.lower() else "annual"
