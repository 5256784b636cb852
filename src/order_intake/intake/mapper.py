"""Locate order fields in tokenized text.

Two passes over the lines, both left to right:

1. learned signatures from the PatternStore claim lines first;
2. keyword cues fill the fields still empty, and lines inside the first
   item block that nobody claimed become item lines.

Running the learned pass over every line before any keyword fires keeps
operator-taught positions ahead of the built-in cues wherever they occur.
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional

from ..domain.models import ContextSignature, Line
from ..domain.normalize import find_mobile_number
from ..logging import get_logger
from .constants import (
    ADDRESS_GUIDANCE_PHRASES,
    FIELD_ADDRESS,
    FIELD_CUSTOMER_NAME,
    FIELD_CUSTOMER_PHONE,
    FIELD_DELIVERY_ZONE,
    GUIDANCE_CUES,
    ITEM_SECTION_END_CUES,
    ITEM_SECTION_START_CUES,
    KEYWORD_CUES,
    SCORE_ABOVE,
    SCORE_BELOW,
    SCORE_LABEL,
    SCORE_THRESHOLD,
    SCORE_THRESHOLD_AT_START,
    SECTION_BEFORE,
    SECTION_CLOSED,
    SECTION_IN,
    SIGNATURE_END,
    SIGNATURE_START,
    SINGULAR_FIELDS,
)
from .mapping import FieldMapping
from .patterns import PatternStore


LOG = get_logger("intake-mapper")

_PAYLOAD_STRIP_RE = re.compile(r"[\s:：\-()\[\]]+")


def _contains_any(lowered: str, cues: Iterable[str]) -> bool:
    return any(cue in lowered for cue in cues)


class ItemSection:
    """BEFORE -> IN_SECTION -> CLOSED; CLOSED never reopens."""

    def __init__(self) -> None:
        self.state = SECTION_BEFORE

    def feed(self, text: str) -> bool:
        """Advance on one line; True when the line lies inside the open block.

        Start and end cue lines are boundaries, never inside.
        """
        lowered = text.casefold()
        if self.state == SECTION_BEFORE:
            if _contains_any(lowered, ITEM_SECTION_START_CUES):
                self.state = SECTION_IN
            return False
        if self.state == SECTION_IN:
            if _contains_any(lowered, ITEM_SECTION_END_CUES):
                self.state = SECTION_CLOSED
                return False
            return True
        return False


def neighbor_context(lines: List[Line], index: int) -> tuple[str, str]:
    """Return (above, below) for a 1-based line index using the sentinels."""
    above = lines[index - 2].text if index > 1 else SIGNATURE_START
    below = lines[index].text if index < len(lines) else SIGNATURE_END
    return above, below


def score_signature(signature: ContextSignature, lines: List[Line], index: int) -> int:
    above, below = neighbor_context(lines, index)
    score = 0
    if signature.above == above:
        score += SCORE_ABOVE
    if signature.below == below:
        score += SCORE_BELOW
    if signature.label and signature.label in lines[index - 1].text:
        score += SCORE_LABEL
    return score


def signature_matches(signature: ContextSignature, lines: List[Line], index: int) -> bool:
    score = score_signature(signature, lines, index)
    if score >= SCORE_THRESHOLD:
        return True
    return signature.above == SIGNATURE_START and score >= SCORE_THRESHOLD_AT_START


class _Assignment:
    def __init__(self) -> None:
        self.mapping = FieldMapping()
        self.claimed: Dict[int, str] = {}

    def is_free(self, line: Line) -> bool:
        return not line.is_blank and line.index not in self.claimed

    def assign(self, field_id: str, line: Line, source: str) -> None:
        self.mapping.singular[field_id] = line.index
        self.claimed[line.index] = field_id
        LOG.debug("%s -> line %d via %s: %r", field_id, line.index, source, line.text)


def _learned_pass(lines: List[Line], store: PatternStore, state: _Assignment) -> None:
    for line in lines:
        if not state.is_free(line):
            continue
        for field_id in SINGULAR_FIELDS:
            if field_id in state.mapping.singular:
                continue
            if any(signature_matches(sig, lines, line.index) for sig in store.signatures(field_id)):
                state.assign(field_id, line, "learned signature")
                break


def _has_payload(lowered: str, cues: Iterable[str]) -> bool:
    """True when some cue occurs and the line still says something without it."""
    for cue in cues:
        if cue in lowered:
            rest = _PAYLOAD_STRIP_RE.sub("", lowered.replace(cue, "", 1))
            if rest:
                return True
    return False


def _next_free_line(lines: List[Line], index: int, state: _Assignment) -> Optional[Line]:
    for candidate in lines[index:]:
        if candidate.is_blank:
            continue
        return candidate if state.is_free(candidate) else None
    return None


def _keyword_target(
    field_id: str,
    line: Line,
    lines: List[Line],
    in_section: bool,
    state: _Assignment,
) -> Optional[Line]:
    lowered = line.text.casefold()
    cues = KEYWORD_CUES.get(field_id, ())

    if field_id == FIELD_ADDRESS:
        if _contains_any(lowered, ADDRESS_GUIDANCE_PHRASES):
            return _next_free_line(lines, line.index, state)
        return line if _has_payload(lowered, cues) else None

    if field_id == FIELD_CUSTOMER_NAME and _contains_any(lowered, GUIDANCE_CUES):
        return None
    if field_id == FIELD_CUSTOMER_PHONE and find_mobile_number(line.text):
        return line
    if field_id == FIELD_DELIVERY_ZONE and in_section:
        return None
    return line if _has_payload(lowered, cues) else None


def auto_map(lines: List[Line], store: Optional[PatternStore] = None) -> FieldMapping:
    """Build the field -> line(s) mapping for one parse of the text.

    Pure: the same lines and store always give the same mapping.
    """
    store = store if store is not None else PatternStore()
    state = _Assignment()
    _learned_pass(lines, store, state)

    section = ItemSection()
    for line in lines:
        in_section = section.feed(line.text)
        for field_id in SINGULAR_FIELDS:
            if not state.is_free(line):
                break
            if field_id in state.mapping.singular:
                continue
            target = _keyword_target(field_id, line, lines, in_section, state)
            if target is not None:
                state.assign(field_id, target, "keyword")
        if in_section and state.is_free(line):
            state.mapping.items.append(line.index)

    LOG.debug(
        "Mapped %d field(s) and %d item line(s) from %d line(s)",
        len(state.mapping.singular),
        len(state.mapping.items),
        len(lines),
    )
    return state.mapping
