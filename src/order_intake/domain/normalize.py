import re
from typing import Optional

from ..logging import get_logger

_LOG = get_logger("normalize")

# First `:`, fullwidth colon or tab ends the label part of a line.
_SEPARATOR_RE = re.compile(r"[:：\t]")
_MOBILE_RE = re.compile(r"01[016789]-?\d{3,4}-?\d{4}")
_WON_AMOUNT_RE = re.compile(r"^(\d[\d,]*)\s*원$")
_TRAILING_WON_RE = re.compile(r"(\d[\d,]*)\s*원\s*$")
_NUMBER_RE = re.compile(r"\d[\d,]*")


def compact(text: str) -> str:
    """Lowercase and drop all whitespace for loose name comparisons."""
    return re.sub(r"\s+", "", text or "").casefold()


def split_label(text: str) -> tuple[str, Optional[str]]:
    """Split a line at its first separator.

    Returns (label, rest); rest is None when the line has no separator.
    """
    m = _SEPARATOR_RE.search(text or "")
    if not m:
        return (text or "", None)
    return (text[: m.start()], text[m.end():])


def line_label(text: str) -> str:
    """Text before the first separator, or "" when there is none."""
    label, rest = split_label(text)
    return label if rest is not None else ""


def strip_label(text: str) -> str:
    """Drop a leading "label + separator" prefix and trim the remainder.

    >>> strip_label("Orderer: Jane Doe")
    'Jane Doe'
    >>> strip_label("123 Main St")
    '123 Main St'
    """
    _, rest = split_label(text)
    return (rest if rest is not None else (text or "")).strip()


def digits_to_int(text: str) -> int:
    """Keep only digits and parse; 0 when none remain."""
    digits = re.sub(r"\D", "", text or "")
    return int(digits) if digits else 0


def find_mobile_number(text: str) -> Optional[str]:
    m = _MOBILE_RE.search(text or "")
    return m.group(0) if m else None


def parse_won_amount(text: str) -> Optional[int]:
    """Parse a line that is only an amount with a 원 suffix ("12,000원")."""
    m = _WON_AMOUNT_RE.match((text or "").strip())
    if not m:
        return None
    return int(m.group(1).replace(",", ""))


def trailing_won_amount(text: str) -> Optional[int]:
    """Amount at the end of a line when it carries the 원 suffix ("배달팁 3,000원")."""
    m = _TRAILING_WON_RE.search((text or "").strip())
    if not m:
        return None
    return int(m.group(1).replace(",", ""))


def last_amount(text: str) -> int:
    """Return the last number in the text (thousands commas allowed), else 0."""
    found = _NUMBER_RE.findall(text or "")
    if not found:
        return 0
    value = found[-1].replace(",", "")
    try:
        return int(value)
    except ValueError:
        _LOG.debug(f"Unparseable amount {found[-1]!r} in {text!r}")
        return 0
