"""
HS code helpers - canonical formatting, tokenization and column filtering

Canonical form groups up to 10 digits as chapter/heading (4), subheading (2),
regional (2) and national (2) segments:

- "123456"      → "1234.56"
- "12345678"    → "1234.56.78"
- "1234567890"  → "1234.56.78.90"
- "123456789"   → "1234.56.78.9"
- "0101"        → "0101"

Every equality comparison between codes goes through `format_code`.
"""
import re
from decimal import Decimal
from typing import Dict, List, Mapping, Optional

KEY_COLUMN = "hscode"
MAX_CODE_DIGITS = 10

_NON_DIGIT = re.compile(r"[^0-9]")
_TOKEN = re.compile(r"[a-z0-9]+")
_PLAIN_NUMBER = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)")


def digits_only(value: Optional[str]) -> str:
    """Strip everything except ASCII digits."""
    if not value:
        return ""
    return _NON_DIGIT.sub("", str(value))


def format_code(value: Optional[str]) -> Optional[str]:
    """
    Canonical dotted representation of an HS code.

    Args:
        value: Raw code in any notation ("8471.30", "8471 30 00", "847130")

    Returns:
        Canonical code, or None when the input carries no digits
    """
    digits = digits_only(value)[:MAX_CODE_DIGITS]
    if not digits:
        return None

    if len(digits) > 8:
        return f"{digits[:4]}.{digits[4:6]}.{digits[6:8]}.{digits[8:]}"
    if len(digits) > 6:
        return f"{digits[:4]}.{digits[4:6]}.{digits[6:]}"
    if len(digits) > 4:
        return f"{digits[:4]}.{digits[4:]}"
    return digits


def tokenize(text: str) -> List[str]:
    """Lowercase alphanumeric runs of length >= 2, deduplicated in first-seen order."""
    seen = []
    for token in _TOKEN.findall(text.lower()):
        if len(token) > 1 and token not in seen:
            seen.append(token)
    return seen


def normalize_header(header: str) -> str:
    """Letters and digits only, lowercased ("HS Code" → "hscode")."""
    return "".join(ch for ch in str(header) if ch.isalnum()).lower()


def is_zero_like(value: str) -> bool:
    """True for blank cells and numeric zeros such as "0", "0.00", "0%" or "0,000"."""
    cleaned = value.strip().replace(",", "").replace("%", "")
    if not cleaned:
        return True
    # Plain decimal notation only: no exponents, underscores or "NaN"
    if not _PLAIN_NUMBER.fullmatch(cleaned):
        return False
    return Decimal(cleaned) == 0


def filter_columns(columns: Mapping[str, str]) -> Dict[str, str]:
    """Drop empty and zero-like columns before a row leaves the index."""
    output = {}
    for key, raw in columns.items():
        value = (raw or "").strip()
        if not value or is_zero_like(value):
            continue
        output[key] = value
    return output


def get_column(columns: Optional[Mapping[str, str]], *names: str) -> Optional[str]:
    """
    Case-insensitive column access.

    Returns the first non-blank value among `names`, or None.
    """
    if not columns:
        return None
    lowered = {key.lower(): value for key, value in columns.items()}
    for name in names:
        value = lowered.get(name.lower())
        if value is not None and value.strip():
            return value.strip()
    return None


def get_key_column(columns: Optional[Mapping[str, str]]) -> Optional[str]:
    """Value of the column whose header normalizes to "hscode"."""
    if not columns:
        return None
    for key, value in columns.items():
        if normalize_header(key) == KEY_COLUMN and value and value.strip():
            return value.strip()
    return None
