from __future__ import annotations

import re
from typing import List

from ..domain.models import Line

_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")


def tokenize(text: str) -> List[Line]:
    """Split pasted text into 1-based Lines.

    Blank lines are kept so line numbers and neighbor context stay stable;
    each line is trimmed of surrounding whitespace, inner tabs survive.
    """
    if not text:
        return []
    return [Line(index=i, text=raw.strip()) for i, raw in enumerate(_LINE_BREAK_RE.split(text), start=1)]


def line_at(lines: List[Line], index: int) -> Line | None:
    """Return the line with the given 1-based index, or None when out of range."""
    if 1 <= index <= len(lines):
        return lines[index - 1]
    return None
