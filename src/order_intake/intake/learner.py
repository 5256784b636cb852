from __future__ import annotations

from typing import List, Optional, Sequence

from ..domain.models import ContextSignature, Line
from ..domain.normalize import line_label
from ..logging import get_logger
from .constants import SINGULAR_FIELDS
from .mapper import neighbor_context
from .mapping import FieldMapping
from .patterns import PatternStore
from .tokenizer import line_at


LOG = get_logger("intake-learner")


def derive_signature(lines: Sequence[Line], index: int) -> Optional[ContextSignature]:
    """Fingerprint a mapped line by its label and its neighbors' full text."""
    all_lines = list(lines)
    line = line_at(all_lines, index)
    if line is None or line.is_blank:
        return None
    above, below = neighbor_context(all_lines, index)
    return ContextSignature(label=line_label(line.text).strip(), above=above, below=below)


def learn(lines: Sequence[Line], mapping: FieldMapping, store: PatternStore) -> List[str]:
    """Append signatures for every mapped singular field; items are not learned.

    Returns the field ids that gained a new signature.
    """
    learned: List[str] = []
    for field_id in SINGULAR_FIELDS:
        idx = mapping.line_for(field_id)
        if idx is None:
            continue
        signature = derive_signature(lines, idx)
        if signature is None:
            LOG.debug("Skipping %s: line %s is blank or out of range", field_id, idx)
            continue
        if store.add(field_id, signature):
            learned.append(field_id)
            LOG.debug("Learned %s: %s", field_id, signature)
    return learned

